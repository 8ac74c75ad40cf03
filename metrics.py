import math
import random
from datetime import datetime
from typing import Optional

from schemas import CountryCreate, JoinedCountry

GDP_MULTIPLIER_MIN = 1000.0
GDP_MULTIPLIER_MAX = 2000.0


def gdp_multiplier(rng: random.Random) -> float:
    """Draw from [GDP_MULTIPLIER_MIN, GDP_MULTIPLIER_MAX)."""
    value = GDP_MULTIPLIER_MIN + (GDP_MULTIPLIER_MAX - GDP_MULTIPLIER_MIN) * rng.random()
    # Rounding can land exactly on the upper bound.
    return min(value, math.nextafter(GDP_MULTIPLIER_MAX, GDP_MULTIPLIER_MIN))


def estimate_gdp(population: int, exchange_rate: Optional[float], rng: random.Random) -> float:
    # A zero rate counts as no rate.
    if exchange_rate is None or exchange_rate <= 0:
        return 0.0
    return population * gdp_multiplier(rng) / exchange_rate


def compute_metrics(joined: JoinedCountry, rng: random.Random, refreshed_at: datetime) -> CountryCreate:
    return CountryCreate(
        **joined.model_dump(),
        estimated_gdp=estimate_gdp(joined.population, joined.exchange_rate, rng),
        last_refreshed_at=refreshed_at,
    )
