from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_serializer, model_validator
from typing import Optional


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything we store is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat_z(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return as_utc(value).isoformat().replace("+00:00", "Z")


class JoinedCountry(BaseModel):
    """A country after currency and rate resolution, before the GDP estimate."""

    name: str = Field(..., min_length=1, examples=["Nigeria"])
    capital: Optional[str] = Field(None, examples=["Abuja"])
    region: Optional[str] = Field(None, examples=["Africa"])
    population: int = Field(..., gt=0, description="The population of the country", examples=[206139589])
    currency_code: Optional[str] = Field(None, description="The currency code of the country", examples=["NGN"])
    exchange_rate: Optional[float] = Field(None, gt=0, description="Units of the currency per USD", examples=[1600.23])
    flag_url: Optional[str] = Field(None, description="The URL of the country's flag")


class CountryCreate(JoinedCountry):
    estimated_gdp: float = Field(0.0, ge=0, description="population x random(1000-2000) / exchange_rate")
    last_refreshed_at: datetime

    @model_validator(mode="after")
    def check_gdp_matches_rate(self):
        if self.exchange_rate is None and self.estimated_gdp != 0:
            raise ValueError("estimated_gdp must be 0 when exchange_rate is missing")
        if self.exchange_rate is not None and self.estimated_gdp <= 0:
            raise ValueError("estimated_gdp must be positive when exchange_rate is set")
        return self


class CountryResponse(JoinedCountry):
    id: int
    estimated_gdp: float
    last_refreshed_at: datetime = Field(..., description="The last time the country data was refreshed")
    model_config = {"from_attributes": True}

    @field_serializer("last_refreshed_at")
    def serialize_last_refreshed_at(self, value: datetime) -> str:
        return isoformat_z(value)


class StatusResponse(BaseModel):
    total_countries: int
    last_refreshed_at: Optional[datetime] = None

    @field_serializer("last_refreshed_at")
    def serialize_last_refreshed_at(self, value: Optional[datetime]) -> Optional[str]:
        return isoformat_z(value)


class RefreshResponse(BaseModel):
    message: str = "Refresh completed"
    total_countries: int
    skipped: int = Field(0, description="Source records dropped for missing required fields")
    last_refreshed_at: datetime
    image_rendered: bool

    @field_serializer("last_refreshed_at")
    def serialize_last_refreshed_at(self, value: datetime) -> str:
        return isoformat_z(value)


class ErrorResponse(BaseModel):
    error: str
    code: str
    details: Optional[str] = None
