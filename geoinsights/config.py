# geoinsights/config.py
from dotenv import load_dotenv
import os

load_dotenv()


def _optional_float(name: str):
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return float(value)


# API Keys
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

# Runtime parameters
REQUEST_DELAY_SECONDS = float(os.getenv("REQUEST_DELAY_SECONDS", "1.1"))  # Nominatim allows 1 req/sec
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))
LLM_MAX_RATE = int(os.getenv("LLM_MAX_RATE", "60"))
COLUMN_FUZZY_THRESHOLD = 85
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Matching parameters
EARTH_RADIUS_M = 6_371_000
EXACT_CELL_METERS = 1.0
OVERLAP_DECIMALS = 5
# Never defaulted: proximity analysis needs an explicit threshold
PROXIMITY_THRESHOLD_M = _optional_float("PROXIMITY_THRESHOLD_M")

# Models
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

# URLs
NOMINATIM_URL = os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org")
USER_AGENT = os.getenv("USER_AGENT", "GeoInsights/0.1 (POI validation)")
