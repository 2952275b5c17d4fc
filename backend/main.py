import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Header, HTTPException, Request

from conversation import WebhookIn, parse_turn
from handlers import Services, TurnContext, route_turn
from log_utils import log_error, log_event
from notifier import PushNotifier
from schedule import load_schedule
from subscriptions import col_subscribers, get_db, list_subscribers


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = get_db()
    app.state.services = Services(
        schedule=load_schedule(),
        subscribers=col_subscribers(db),
        notifier=PushNotifier(),
    )
    log_event("startup", {"days": sorted(app.state.services.schedule.keys())})
    yield
    db.client.close()


# ---------- FastAPI ----------
app = FastAPI(title="Action Gym Fulfillment", lifespan=lifespan)


def get_services(request: Request) -> Services:
    return request.app.state.services


# ---------- Admin security (X-Admin-Key) ----------
def require_admin(x_admin_key: Optional[str] = Header(default=None)):
    expected = os.getenv("ADMIN_API_KEY", "").strip()
    if not expected:
        raise HTTPException(status_code=500, detail="ADMIN_API_KEY not configured")
    if (x_admin_key or "").strip() != expected:
        raise HTTPException(status_code=401, detail="Unauthorized")


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/fulfillment")
def fulfillment(
    payload: WebhookIn,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
):
    request_id = str(uuid.uuid4())
    t0 = time.monotonic()
    intent_name = payload.query_result.intent.display_name

    try:
        turn = parse_turn(payload)
    except ValueError:
        log_event("turn_rejected", {"request_id": request_id, "intent": intent_name})
        raise HTTPException(status_code=400, detail=f"Unknown intent: {intent_name}")

    ctx = TurnContext(services=services, background=background_tasks)
    try:
        res = route_turn(turn, ctx)
    except Exception as e:
        log_error("turn_failed", {
            "request_id": request_id,
            "intent": intent_name,
            "error": repr(e),
        })
        raise

    log_event("turn", {
        "request_id": request_id,
        "intent": intent_name,
        "fallback_count": turn.state.fallback_count,
        "expect_user_response": res.expect_user_response,
        "latency_ms": int((time.monotonic() - t0) * 1000),
    })
    return res.to_webhook(turn.session, turn.state)


# ===================== Admin Endpoints =====================
# NOTE: These endpoints are protected by X-Admin-Key.

@app.get("/admin/subscribers", dependencies=[Depends(require_admin)])
def admin_list_subscribers(
    topic: Optional[str] = None,
    limit: int = 200,
    services: Services = Depends(get_services),
):
    docs = list_subscribers(services.subscribers, topic=topic, limit=limit)
    return {"count": len(docs), "subscribers": docs}


@app.post("/admin/notify/{topic}", dependencies=[Depends(require_admin)])
def admin_notify(
    topic: str,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
):
    background_tasks.add_task(services.notifier.dispatch, services.subscribers, topic)
    log_event("dispatch_queued", {"topic": topic})
    return {"queued": True, "topic": topic}
