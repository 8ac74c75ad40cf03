from typing import List, Optional

from pydantic import BaseModel, field_validator
from sqlalchemy import Select, func, select

from logger import get_logger
from models import Country
from store import SnapshotStore

logger = get_logger(__name__)

# Ties fall back to store order so results are deterministic.
SORT_ORDERS = {
    "gdp_desc": (Country.estimated_gdp.desc(),),
    "gdp_asc": (Country.estimated_gdp.asc(),),
    "population_desc": (Country.population.desc(),),
    "population_asc": (Country.population.asc(),),
    "name_asc": (func.lower(Country.name).asc(),),
    "name_desc": (func.lower(Country.name).desc(),),
}


class CountryQuery(BaseModel):
    """Filters for ``GET /countries``; blank values count as not provided."""

    region: Optional[str] = None
    currency: Optional[str] = None
    sort: Optional[str] = None

    @field_validator("region", "currency", "sort", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
        return value or None


def build_statement(query: CountryQuery) -> Select:
    stmt = select(Country)
    # Region and currency match case-insensitively.
    if query.region:
        stmt = stmt.where(func.lower(Country.region) == query.region.lower())
    if query.currency:
        stmt = stmt.where(func.upper(Country.currency_code) == query.currency.upper())

    ordering = SORT_ORDERS.get(query.sort, ()) if query.sort else ()
    if query.sort and not ordering:
        logger.debug("Ignoring unknown sort key %r", query.sort)
    return stmt.order_by(*ordering, Country.id)


async def find_countries(store: SnapshotStore, query: CountryQuery) -> List[Country]:
    return await store.select(build_statement(query))
