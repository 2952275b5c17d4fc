import json
import os
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict


DAYS = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]

DEFAULT_SCHEDULE_PATH = Path(__file__).resolve().parent / "data" / "schedule.json"


class ScheduleEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: str
    name: str
    start_time: str


# day name -> entries in dataset order
Schedule = Dict[str, Tuple[ScheduleEntry, ...]]


def load_schedule(path: Optional[Path] = None) -> Schedule:
    """Load the weekly class schedule once.

    Expected shape: {"days": {"Monday": [{"name": "...", "startTime": "..."}]}}
    """
    if path is None:
        raw = os.getenv("SCHEDULE_PATH", "").strip()
        path = Path(raw) if raw else DEFAULT_SCHEDULE_PATH
    if not path.exists():
        raise RuntimeError(f"Schedule not found at: {path}")

    data = json.loads(path.read_text(encoding="utf-8"))
    out: Dict[str, Tuple[ScheduleEntry, ...]] = {}
    for day, classes in (data.get("days") or {}).items():
        out[day] = tuple(
            ScheduleEntry(day=day, name=c["name"], start_time=c["startTime"])
            for c in classes
        )
    return out


def current_day(now: Optional[datetime] = None) -> str:
    if now is None:
        tz = os.getenv("SCHEDULE_TIMEZONE", "UTC").strip() or "UTC"
        now = datetime.now(ZoneInfo(tz))
    return DAYS[now.weekday()]


def resolve_day(day: Optional[str], now: Optional[datetime] = None) -> str:
    """Slot value if the user named a day, today otherwise."""
    d = (day or "").strip()
    if not d:
        return current_day(now)
    return d[:1].upper() + d[1:].lower()


def class_list(schedule: Schedule, day: str) -> str:
    # KeyError on an unknown day is intentional: bad schedule data is not masked.
    entries = schedule[day]
    out: List[str] = []
    seen = set()
    for e in entries:
        label = f"{e.name} at {e.start_time}"
        if label in seen:
            continue
        seen.add(label)
        out.append(label)
    return ", ".join(out)
