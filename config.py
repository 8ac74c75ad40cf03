import os
from dotenv import load_dotenv

load_dotenv()

COUNTRY_API_URL = os.getenv(
    "COUNTRY_API_URL",
    "https://restcountries.com/v2/all?fields=name,capital,region,population,flag,currencies",
)
EXCHANGE_RATE_API_URL = os.getenv("RATE_API_URL", "https://open.er-api.com/v6/latest/USD")

# Seconds; applies to connect and read on both providers.
EXTERNAL_API_TIMEOUT = float(os.getenv("EXTERNAL_API_TIMEOUT", "15"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")

CORS_ALLOW_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]
