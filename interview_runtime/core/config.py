import os
from pathlib import Path
from dotenv import load_dotenv

_PROJECT_ROOT = Path(__file__).resolve().parents[2]
_PROJECT_ENV_PATH = _PROJECT_ROOT / ".env"
load_dotenv(dotenv_path=_PROJECT_ENV_PATH, override=False)

ENVIRONMENT = str(os.getenv("ENV") or "development").strip().lower()

AUTOSAVE_INTERVAL_SEC = max(1.0, float(os.getenv("AUTOSAVE_INTERVAL_SEC", "30")))
LOW_TIME_WARNING_SEC = max(0, int(os.getenv("LOW_TIME_WARNING_SEC", "60")))

SESSION_STORE_PATH = str(os.getenv("SESSION_STORE_PATH") or "").strip()
QUESTION_BANK_PATH = str(os.getenv("QUESTION_BANK_PATH") or "").strip()

LIVE_SESSION_TTL_SEC = max(60, int(os.getenv("LIVE_SESSION_TTL_SEC", "1800")))
LIVE_SESSION_CLEANUP_INTERVAL_SEC = max(30, int(os.getenv("LIVE_SESSION_CLEANUP_INTERVAL_SEC", "120")))
