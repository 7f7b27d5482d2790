import os
from typing import Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()

FHIR_BASE_URL = os.getenv("FHIR_BASE_URL", "https://twcore.hapi.fhir.tw/fhir").rstrip("/")
FHIR_TIMEOUT_SECONDS = float(os.getenv("FHIR_TIMEOUT_SECONDS", "8"))
# Pages of Observation results read per sync; 1 = most recent page only.
FHIR_MAX_PAGES = max(1, int(os.getenv("FHIR_MAX_PAGES", "1")))

# Issued by the external SMART launch; the app never runs the OAuth flow itself.
SMART_FHIR_BASE_URL = os.getenv("SMART_FHIR_BASE_URL", "")
SMART_ACCESS_TOKEN = os.getenv("SMART_ACCESS_TOKEN", "")
SMART_PATIENT_ID = os.getenv("SMART_PATIENT_ID", "")

DATABASE_URL = os.getenv("DATABASE_URL", "")
BP_STORE_PATH = os.getenv("BP_STORE_PATH", "bp_store.json")

DISPLAY_TIMEZONE = os.getenv("DISPLAY_TIMEZONE", "")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def display_tz() -> Optional[ZoneInfo]:
    """Configured display timezone, or None for the machine's local zone."""
    return ZoneInfo(DISPLAY_TIMEZONE) if DISPLAY_TIMEZONE else None


def smart_launch_configured() -> bool:
    return bool(SMART_FHIR_BASE_URL and SMART_ACCESS_TOKEN and SMART_PATIENT_ID)
