from sqlalchemy import BigInteger, Column, DateTime, Float, Integer, String
from database import Base


class Country(Base):
    __tablename__ = 'countries'

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    # Casefolded name; lookups and deletes match on this column.
    name_key = Column(String(255), index=True, nullable=False)
    capital = Column(String(255), nullable=True)
    region = Column(String(255), index=True, nullable=True)
    population = Column(BigInteger, nullable=False)
    currency_code = Column(String(10), index=True, nullable=True)
    exchange_rate = Column(Float, nullable=True)
    estimated_gdp = Column(Float, nullable=False, default=0.0)
    flag_url = Column(String(512), nullable=True)
    # Set explicitly by each refresh; every row of one snapshot shares the value.
    last_refreshed_at = Column(DateTime(timezone=True), index=True, nullable=False)

    def __repr__(self):
        return f"<Country id={self.id} name={self.name!r}>"


def name_key(name: str) -> str:
    return name.strip().casefold()
