"""Shared fixtures: in-memory subscriber collection and a wired TestClient."""

import json
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from handlers import Services
from main import app, get_services
from notifier import PushNotifier
from schedule import DEFAULT_SCHEDULE_PATH, load_schedule

SESSION = "projects/action-gym/agent/sessions/abc123"


class FakeCursor(list):
    def limit(self, n: int) -> "FakeCursor":
        return FakeCursor(self[:n])


class FakeCollection:
    """Just enough of a pymongo Collection for insert_one/find."""

    def __init__(self, docs: Optional[List[Dict[str, Any]]] = None):
        self.docs: List[Dict[str, Any]] = [dict(d) for d in docs or []]

    def insert_one(self, doc: Dict[str, Any]) -> None:
        self.docs.append(dict(doc))

    def find(self, query: Optional[Dict[str, Any]] = None, projection: Optional[Dict[str, Any]] = None) -> FakeCursor:
        query = query or {}
        return FakeCursor(
            dict(d) for d in self.docs if all(d.get(k) == v for k, v in query.items())
        )


class StubTokenNotifier(PushNotifier):
    def __init__(self, **kwargs):
        super().__init__(credentials_file="unused.json", **kwargs)
        self.token_requests = 0

    def access_token(self) -> str:
        self.token_requests += 1
        return "test-token"


@pytest.fixture
def subscribers() -> FakeCollection:
    return FakeCollection()


@pytest.fixture
def notifier() -> StubTokenNotifier:
    return StubTokenNotifier()


@pytest.fixture
def services(subscribers: FakeCollection, notifier: StubTokenNotifier) -> Services:
    return Services(
        schedule=load_schedule(DEFAULT_SCHEDULE_PATH),
        subscribers=subscribers,
        notifier=notifier,
    )


@pytest.fixture
def client(services: Services):
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_request(
    intent: str,
    params: Optional[Dict[str, Any]] = None,
    arguments: Optional[List[Dict[str, Any]]] = None,
    screen: bool = True,
    state: Optional[Dict[str, Any]] = None,
    conversation_id: Optional[str] = "conv-1",
) -> Dict[str, Any]:
    contexts = []
    if state is not None:
        contexts.append({
            "name": f"{SESSION}/contexts/_actions_on_google",
            "lifespanCount": 99,
            "parameters": {"data": json.dumps(state)},
        })
    payload: Dict[str, Any] = {
        "inputs": [{"intent": "actions.intent.TEXT", "arguments": arguments or []}],
        "surface": {
            "capabilities": [{"name": "actions.capability.SCREEN_OUTPUT"}] if screen else [],
        },
    }
    if conversation_id:
        payload["conversation"] = {"conversationId": conversation_id}
    return {
        "responseId": "resp-1",
        "session": SESSION,
        "queryResult": {
            "queryText": "hello",
            "parameters": params or {},
            "intent": {"displayName": intent},
            "outputContexts": contexts,
        },
        "originalDetectIntentRequest": {"source": "google", "payload": payload},
    }


def texts(body: Dict[str, Any]) -> List[str]:
    items = body["payload"]["google"]["richResponse"]["items"]
    return [i["simpleResponse"]["textToSpeech"] for i in items]


def chips(body: Dict[str, Any]) -> List[str]:
    rich = body["payload"]["google"]["richResponse"]
    return [s["title"] for s in rich.get("suggestions", [])]


def expects_reply(body: Dict[str, Any]) -> bool:
    return body["payload"]["google"]["expectUserResponse"]


def session_state(body: Dict[str, Any]) -> Dict[str, Any]:
    ctx = body["outputContexts"][0]
    return json.loads(ctx["parameters"]["data"])
