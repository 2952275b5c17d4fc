import os
from typing import Any, Dict, List, Optional

from pymongo import MongoClient

from conversation import Turn
from log_utils import ENV_PATH, log_event


# Field names on a subscriber document
INTENT = "intent"
USER_ID = "userId"

# Topic for class-cancelation push notifications
CLASS_CANCELED_TOPIC = "Class Canceled"


def get_db():
    uri = os.getenv("MONGODB_URI", "").strip()
    db_name = os.getenv("MONGODB_DB", "action_gym").strip()
    if not uri:
        raise RuntimeError(f"MONGODB_URI missing. Please set it in .env (expected at: {ENV_PATH})")
    client = MongoClient(uri)
    return client[db_name]


def col_subscribers(db):
    return db[os.getenv("MONGODB_SUBSCRIBERS_COLLECTION", "users").strip()]


def resolve_user_id(turn: Turn) -> Optional[str]:
    """Prefer the id handed over by the permission flow, else this conversation."""
    uid = (turn.argument("UPDATES_USER_ID") or "").strip()
    return uid if uid else turn.conversation_id


def add_subscriber(col, topic: str, user_id: str) -> None:
    """Persist one {topic, user id} record. Repeated opt-in adds another one."""
    col.insert_one({INTENT: topic, USER_ID: user_id})
    log_event("subscriber_added", {"topic": topic, "user_id": user_id})


def find_subscribers(col, topic: str) -> List[Dict[str, Any]]:
    return list(col.find({INTENT: topic}, {"_id": 0}))


def list_subscribers(col, topic: Optional[str] = None, limit: int = 200) -> List[Dict[str, Any]]:
    query = {INTENT: topic} if topic else {}
    return list(col.find(query, {"_id": 0}).limit(max(1, int(limit))))
