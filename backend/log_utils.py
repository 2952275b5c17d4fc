import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv


# Force-load .env from backend/.env (no matter where uvicorn runs)
ENV_PATH = Path(__file__).resolve().parent / ".env"
load_dotenv(dotenv_path=ENV_PATH)


# ---------- Logging (production-friendly JSON logs) ----------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper().strip()
logging.basicConfig(level=LOG_LEVEL, format="%(message)s")
logger = logging.getLogger("action_gym")


def log_event(event: str, payload: Dict[str, Any]) -> None:
    rec = {"event": event, **payload}
    try:
        logger.info(json.dumps(rec, ensure_ascii=False, default=str))
    except (TypeError, ValueError):
        logger.info(f"{event}: {payload}")


def log_error(event: str, payload: Dict[str, Any]) -> None:
    rec = {"event": event, **payload}
    logger.error(json.dumps(rec, ensure_ascii=False, default=str))
