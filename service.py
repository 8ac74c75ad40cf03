import asyncio
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from errors import RefreshInProgressError
from gateway import SourceGateway
from joiner import join_country
from logger import get_logger
from metrics import compute_metrics
from renderer import SummaryImage, SummaryImageCache, render_summary
from schemas import CountryCreate
from store import SnapshotStore

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RefreshSummary:
    total_countries: int
    skipped: int
    last_refreshed_at: datetime
    image_rendered: bool


class CountryRefreshService:
    """
    Runs a refresh cycle: fetch, join, estimate GDP, commit, render.

    Only one refresh runs at a time; a second request while one is in flight
    raises ``RefreshInProgressError`` instead of waiting. A source failure
    raises ``SourceUnavailableError`` before the store is touched.
    """

    def __init__(
        self,
        gateway: SourceGateway,
        store: SnapshotStore,
        image_cache: SummaryImageCache,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utc_now,
        renderer: Callable[..., bytes] = render_summary,
    ):
        self.gateway = gateway
        self.store = store
        self.image_cache = image_cache
        self.rng = rng or random.Random()
        self.clock = clock
        self.renderer = renderer
        self._lock = asyncio.Lock()

    @property
    def in_progress(self) -> bool:
        return self._lock.locked()

    async def refresh(self) -> RefreshSummary:
        if self._lock.locked():
            logger.warning("Refresh rejected: another refresh is in progress")
            raise RefreshInProgressError()
        async with self._lock:
            return await self._refresh()

    async def _refresh(self) -> RefreshSummary:
        refresh_time = self.clock()
        logger.info("Starting refresh at %s", refresh_time.isoformat())

        countries_data = await self.gateway.fetch_countries()
        rates = await self.gateway.fetch_exchange_rates()

        records = self.prepare_records(countries_data, rates, refresh_time)
        skipped = len(countries_data) - len(records)
        if skipped:
            logger.info("Skipped %d country records with missing required fields", skipped)

        total = await self.store.replace_all(records)
        image_rendered = await self._render(refresh_time)
        logger.info("Refresh completed: %d countries stored", total)
        return RefreshSummary(
            total_countries=total,
            skipped=skipped,
            last_refreshed_at=refresh_time,
            image_rendered=image_rendered,
        )

    def prepare_records(self, countries_data: List[dict], rates: dict, refresh_time: datetime) -> List[CountryCreate]:
        records = []
        for raw in countries_data:
            joined = join_country(raw, rates)
            if joined is None:
                logger.debug("Skipping country record %r", raw.get("name"))
                continue
            records.append(compute_metrics(joined, self.rng, refresh_time))
        return records

    async def _render(self, refresh_time: datetime) -> bool:
        # The committed snapshot stands whatever happens here.
        try:
            countries = await self.store.all()
            content = await asyncio.to_thread(self.renderer, countries, refresh_time)
        except Exception:
            logger.exception("Failed to render summary image; keeping the previous one.")
            return False
        self.image_cache.set(SummaryImage(content=content, generated_at=refresh_time))
        logger.info("Rendered summary image (%d bytes)", len(content))
        return True
