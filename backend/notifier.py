"""Push notifications through the Actions API.

One dispatch batch = one access token, one subscriber query, one POST per
subscriber. Per-subscriber failures are logged and skipped; token or query
failures abort the batch.
"""

import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from log_utils import log_error, log_event
from subscriptions import INTENT, USER_ID, find_subscribers


SCOPES = ["https://www.googleapis.com/auth/actions.fulfillment.conversation"]
PUSH_ENDPOINT = os.getenv(
    "PUSH_ENDPOINT", "https://actions.googleapis.com/v2/conversations:send"
).strip()
PUSH_SANDBOX = os.getenv("PUSH_SANDBOX", "true").strip().lower() in ("1", "true", "yes")
NOTIFICATION_TITLE = "Test Notification from Action Gym"


@dataclass(frozen=True)
class Notification:
    title: str
    user_id: str
    intent: str

    def to_push_message(self) -> Dict[str, Any]:
        return {
            "userNotification": {"title": self.title},
            "target": {"userId": self.user_id, "intent": self.intent},
        }


@dataclass
class DispatchReport:
    topic: str
    attempted: int = 0
    delivered: int = 0
    failed: List[str] = field(default_factory=list)


class PushNotifier:
    def __init__(
        self,
        credentials_file: Optional[str] = None,
        endpoint: str = PUSH_ENDPOINT,
        sandbox: bool = PUSH_SANDBOX,
        title: str = NOTIFICATION_TITLE,
    ):
        self.credentials_file = credentials_file or os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE", "").strip()
        self.endpoint = endpoint
        self.sandbox = sandbox
        self.title = title

    def access_token(self) -> str:
        if not self.credentials_file:
            raise RuntimeError("GOOGLE_SERVICE_ACCOUNT_FILE not configured")
        creds = service_account.Credentials.from_service_account_file(
            self.credentials_file, scopes=SCOPES
        )
        creds.refresh(Request())
        return creds.token

    def send(self, token: str, notification: Notification) -> requests.Response:
        return requests.post(
            self.endpoint,
            headers={"Authorization": f"Bearer {token}"},
            json={
                "customPushMessage": notification.to_push_message(),
                "isInSandbox": self.sandbox,
            },
        )

    def _deliver(self, token: str, notification: Notification) -> bool:
        try:
            resp = self.send(token, notification)
        except requests.RequestException as e:
            log_error("push_failed", {"user_id": notification.user_id, "error": str(e)})
            return False
        if not resp.ok:
            log_error("push_failed", {
                "user_id": notification.user_id,
                "status": resp.status_code,
                "reason": resp.reason,
                "body": resp.text[:500],
            })
            return False
        log_event("push_sent", {"user_id": notification.user_id, "status": resp.status_code})
        return True

    def dispatch(self, col, topic: str) -> DispatchReport:
        t0 = time.monotonic()
        try:
            token = self.access_token()
        except Exception as e:
            log_error("dispatch_auth_failed", {"topic": topic, "error": str(e)})
            raise
        try:
            subscribers = find_subscribers(col, topic)
        except Exception as e:
            log_error("dispatch_query_failed", {"topic": topic, "error": str(e)})
            raise

        report = DispatchReport(topic=topic, attempted=len(subscribers))
        notifications = [
            Notification(title=self.title, user_id=s.get(USER_ID), intent=s.get(INTENT))
            for s in subscribers
        ]
        if notifications:
            # one worker per subscriber; completion order is not meaningful
            with ThreadPoolExecutor(max_workers=len(notifications)) as ex:
                futures = {ex.submit(self._deliver, token, n): n for n in notifications}
                for fut in as_completed(futures):
                    if fut.result():
                        report.delivered += 1
                    else:
                        report.failed.append(futures[fut].user_id)

        log_event("dispatch_done", {
            "topic": topic,
            "attempted": report.attempted,
            "delivered": report.delivered,
            "failed": len(report.failed),
            "latency_ms": int((time.monotonic() - t0) * 1000),
        })
        return report
