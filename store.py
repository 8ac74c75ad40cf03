import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncEngine

from database import Base, build_engine, build_session_factory
from logger import get_logger
from models import Country, name_key
from schemas import CountryCreate, as_utc

logger = get_logger(__name__)


@dataclass
class StoreStatus:
    total_countries: int
    last_refreshed_at: Optional[datetime]


class SnapshotStore:
    """
    The current country snapshot, backed by the ``countries`` table.

    Writers (``replace_all`` and ``delete_by_name``) are serialized by a lock and
    each runs in a single transaction, so readers only ever see a whole snapshot.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = build_session_factory(engine)
        self._write_lock = asyncio.Lock()

    @classmethod
    def from_url(cls, database_url: Optional[str] = None) -> "SnapshotStore":
        return cls(build_engine(database_url))

    async def create_schema(self) -> None:
        async with self.engine.begin() as conn:
            logger.info("Creating database tables...")
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def replace_all(self, records: Sequence[CountryCreate]) -> int:
        rows = [Country(**record.model_dump(), name_key=name_key(record.name)) for record in records]
        async with self._write_lock:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.execute(delete(Country))
                    session.add_all(rows)
        logger.info("Replaced snapshot with %d countries", len(rows))
        return len(rows)

    async def find_by_name(self, name: str) -> Optional[Country]:
        async with self._session_factory() as session:
            return await self._first_by_name(session, name)

    async def delete_by_name(self, name: str) -> bool:
        async with self._write_lock:
            async with self._session_factory() as session:
                async with session.begin():
                    country = await self._first_by_name(session, name)
                    if country is None:
                        return False
                    await session.delete(country)
        logger.info("Deleted country %r", country.name)
        return True

    async def select(self, stmt: Select) -> List[Country]:
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def all(self) -> List[Country]:
        return await self.select(select(Country).order_by(Country.id))

    async def status(self) -> StoreStatus:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count(Country.id), func.max(Country.last_refreshed_at))
            )
            total, last = result.one()
        return StoreStatus(
            total_countries=total or 0,
            last_refreshed_at=as_utc(last) if last is not None else None,
        )

    @staticmethod
    async def _first_by_name(session, name: str) -> Optional[Country]:
        stmt = (
            select(Country)
            .where(Country.name_key == name_key(name))
            .order_by(Country.id)
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalars().first()
