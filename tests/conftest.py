import copy
from datetime import datetime, timezone
from typing import Any, List, Optional

import httpx
import pytest

from gateway import SourceGateway
from schemas import CountryCreate

COUNTRY_API_URL = "https://countries.test/v2/all"
RATE_API_URL = "https://rates.test/v6/latest/USD"

RAW_COUNTRIES = [
    {
        "name": "Nigeria",
        "capital": "Abuja",
        "region": "Africa",
        "population": 206139589,
        "flag": "https://flagcdn.com/ng.svg",
        "currencies": [{"code": "NGN", "name": "Nigerian naira", "symbol": "₦"}],
    },
    {
        "name": "Ghana",
        "capital": "Accra",
        "region": "Africa",
        "population": 31072940,
        "flag": "https://flagcdn.com/gh.svg",
        "currencies": [{"code": "GHS", "name": "Ghanaian cedi", "symbol": "₵"}],
    },
    {
        "name": "Togo",
        "capital": "Lomé",
        "region": "Africa",
        "population": 8278737,
        "flag": "https://flagcdn.com/tg.svg",
        "currencies": [{"code": "XOF", "name": "West African CFA franc", "symbol": "Fr"}],
    },
    {
        "name": "Germany",
        "capital": "Berlin",
        "region": "Europe",
        "population": 83240525,
        "flag": "https://flagcdn.com/de.svg",
        "currencies": [{"code": "EUR", "name": "Euro", "symbol": "€"}],
    },
    {
        "name": "Panama",
        "capital": "Panama City",
        "region": "Americas",
        "population": 4314768,
        "flag": "https://flagcdn.com/pa.svg",
        "currencies": [{"code": "", "name": "Panamanian balboa"}, {"code": "USD", "name": "United States dollar"}],
    },
    {
        "name": "Bouvet Island",
        "region": "Antarctic Ocean",
        "flag": "https://flagcdn.com/bv.svg",
        "currencies": [{"code": "NOK", "name": "Norwegian krone"}],
    },
    {
        "name": "Svalbard and Jan Mayen",
        "capital": "Longyearbyen",
        "region": "Europe",
        "population": 2562,
        "flag": "https://flagcdn.com/sj.svg",
        "currencies": [],
    },
    {
        "name": "Zimbabwe",
        "capital": "Harare",
        "region": "Africa",
        "population": 14862927,
        "flag": "https://flagcdn.com/zw.svg",
        "currencies": [{"code": "ZWL", "name": "Zimbabwean dollar"}],
    },
]

RATES_PAYLOAD = {
    "result": "success",
    "base_code": "USD",
    "rates": {"USD": 1, "NGN": 1600.0, "GHS": 15.0, "EUR": 0.92, "NOK": 10.5, "ZWL": 0},
}

STORED_NAMES = ["Nigeria", "Ghana", "Togo", "Germany", "Panama", "Svalbard and Jan Mayen", "Zimbabwe"]


class StubRandom:
    """Stands in for random.Random; always draws the same value."""

    def __init__(self, value: float = 0.5):
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'countries.db'}"


@pytest.fixture
def raw_countries() -> List[dict]:
    return copy.deepcopy(RAW_COUNTRIES)


@pytest.fixture
def rates_payload() -> dict:
    return copy.deepcopy(RATES_PAYLOAD)


@pytest.fixture
def make_gateway(raw_countries, rates_payload):
    """Build a SourceGateway backed by httpx.MockTransport.

    ``countries_error``/``rates_error`` may be an exception to raise or an
    int status code to respond with.
    """

    def _make(
        countries: Optional[Any] = None,
        rates: Optional[Any] = None,
        countries_error: Optional[Any] = None,
        rates_error: Optional[Any] = None,
    ) -> SourceGateway:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            is_countries = request.url.host == "countries.test"
            error = countries_error if is_countries else rates_error
            if isinstance(error, Exception):
                raise error
            if isinstance(error, int):
                return httpx.Response(error, json={"message": "upstream failure"})
            payload = countries if is_countries else rates
            if payload is None:
                payload = raw_countries if is_countries else rates_payload
            return httpx.Response(200, json=payload)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        gateway = SourceGateway(
            country_api_url=COUNTRY_API_URL,
            rate_api_url=RATE_API_URL,
            timeout=2.0,
            client=client,
        )
        gateway.calls = calls
        return gateway

    return _make


def make_record(name: str, region: Optional[str], currency: Optional[str], population: int,
                rate: Optional[float], gdp: float, refreshed_at: Optional[datetime] = None) -> CountryCreate:
    return CountryCreate(
        name=name,
        capital=None,
        region=region,
        population=population,
        currency_code=currency,
        exchange_rate=rate,
        estimated_gdp=gdp,
        flag_url=None,
        last_refreshed_at=refreshed_at or datetime(2025, 10, 22, 12, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def records() -> List[CountryCreate]:
    return [
        make_record("Nigeria", "Africa", "NGN", 206139589, 1600.0, 193255864.69),
        make_record("Germany", "Europe", "EUR", 83240525, 0.92, 135718247282.6),
        make_record("Ghana", "Africa", "GHS", 31072940, 15.0, 3107294000.0),
        make_record("Togo", "Africa", None, 8278737, None, 0.0),
        make_record("Panama", "Americas", "USD", 4314768, 1.0, 6472152000.0),
    ]


@pytest.fixture
def stub_rng() -> StubRandom:
    return StubRandom(0.5)
