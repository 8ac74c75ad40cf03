"""
Join raw country-directory records with the exchange-rate mapping.

Everything here is a pure function of its inputs. A record the joiner cannot
use is rejected by returning ``None``; that is never an error.
"""
import math
from typing import Any, List, Mapping, Optional, Sequence

from schemas import JoinedCountry


def currency_candidates(raw_currencies: Any) -> List[Optional[str]]:
    """Flatten a provider's currency field into an ordered list of codes.

    Accepts the v2 list shape (``[{"code": "NGN", ...}, ...]``) and the v3
    mapping shape (``{"NGN": {...}}``). Entries without a code become ``None``.
    """
    if isinstance(raw_currencies, Mapping):
        return [code if isinstance(code, str) else None for code in raw_currencies.keys()]
    if not isinstance(raw_currencies, (list, tuple)):
        return []
    candidates = []
    for entry in raw_currencies:
        code = entry.get("code") if isinstance(entry, Mapping) else None
        candidates.append(code if isinstance(code, str) else None)
    return candidates


def select_currency_code(candidates: Sequence[Optional[str]]) -> Optional[str]:
    """First candidate that is a non-empty string, else ``None``."""
    for code in candidates:
        if code and code.strip():
            return code.strip()
    return None


def lookup_rate(rates: Mapping[str, Any], currency_code: Optional[str]) -> Optional[float]:
    if not currency_code:
        return None
    try:
        rate = float(rates[currency_code])
    except (KeyError, TypeError, ValueError):
        return None
    if not math.isfinite(rate) or rate <= 0:
        return None
    return rate


def _population(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        return None
    return value


def _optional_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def join_country(raw: Mapping[str, Any], rates: Mapping[str, Any]) -> Optional[JoinedCountry]:
    """Resolve currency and rate for one raw record, or ``None`` to skip it."""
    name = _optional_text(raw.get("name"))
    population = _population(raw.get("population"))
    if name is None or population is None:
        return None

    currency_code = select_currency_code(currency_candidates(raw.get("currencies")))
    return JoinedCountry(
        name=name,
        capital=_optional_text(raw.get("capital")),
        region=_optional_text(raw.get("region")),
        population=population,
        currency_code=currency_code,
        exchange_rate=lookup_rate(rates, currency_code),
        flag_url=_optional_text(raw.get("flag")),
    )
