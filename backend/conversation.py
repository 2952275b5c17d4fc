"""Inbound webhook models and the parsed per-turn view handlers work with.

The platform posts a Dialogflow v2 WebhookRequest. Everything the handlers
need (intent, slot parameters, Actions on Google arguments, screen support,
conversation id and session state) is pulled out once into a `Turn`.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError


STATE_CONTEXT = "_actions_on_google"
STATE_VERSION = 1
SCREEN_CAPABILITY = "actions.capability.SCREEN_OUTPUT"


class Intent(str, Enum):
    WELCOME = "Welcome"
    QUIT = "Quit"
    HOURS = "Hours"
    CLASS_LIST = "Class List"
    NO_INPUT = "No Input"
    FALLBACK = "Fallback"
    SETUP_UPDATES = "Setup Updates"
    CONFIRM_UPDATES = "Confirm Updates"
    SETUP_PUSH = "Setup Push Notifications"
    CONFIRM_PUSH = "Confirm Push Notifications"
    CLASS_CANCELED = "Class Canceled"
    CANCEL_CLASS = "Cancel Class"


# ---------- Wire models (Dialogflow v2 WebhookRequest) ----------
class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class IntentRef(_Wire):
    display_name: str = Field(..., alias="displayName")


class OutputContext(_Wire):
    name: str
    lifespan_count: Optional[int] = Field(default=None, alias="lifespanCount")
    parameters: Dict[str, Any] = {}


class QueryResult(_Wire):
    query_text: str = Field(default="", alias="queryText")
    parameters: Dict[str, Any] = {}
    intent: IntentRef
    output_contexts: List[OutputContext] = Field(default=[], alias="outputContexts")


class OriginalRequest(_Wire):
    source: str = ""
    payload: Dict[str, Any] = {}


class WebhookIn(_Wire):
    response_id: Optional[str] = Field(default=None, alias="responseId")
    session: str
    query_result: QueryResult = Field(..., alias="queryResult")
    original_request: OriginalRequest = Field(
        default_factory=OriginalRequest, alias="originalDetectIntentRequest"
    )


# ---------- Session state ----------
class SessionState(_Wire):
    """Only state kept across turns; round-trips through the output context."""

    fallback_count: int = Field(default=0, alias="fallbackCount")
    version: int = STATE_VERSION

    def to_context_data(self) -> str:
        return json.dumps(self.model_dump(by_alias=True))


def load_session_state(contexts: List[OutputContext]) -> SessionState:
    for ctx in contexts:
        if not ctx.name.endswith("/contexts/" + STATE_CONTEXT):
            continue
        raw = ctx.parameters.get("data")
        if not raw:
            break
        try:
            data = json.loads(raw) if isinstance(raw, str) else raw
            state = SessionState.model_validate(data)
        except (ValueError, ValidationError):
            break
        if state.version != STATE_VERSION:
            break
        return state
    return SessionState()


# ---------- Turn ----------
@dataclass
class Turn:
    intent: Intent
    session: str
    params: Dict[str, Any] = field(default_factory=dict)
    arguments: Dict[str, Any] = field(default_factory=dict)
    has_screen: bool = False
    conversation_id: Optional[str] = None
    state: SessionState = field(default_factory=SessionState)

    def argument(self, name: str, default: Any = None) -> Any:
        return self.arguments.get(name, default)


# The platform omits boolValue when it is false and still sends textValue
# ("false", "0"), so these are read from boolValue alone.
BOOL_ARGUMENTS = {"PERMISSION", "IS_FINAL_REPROMPT"}
INT_ARGUMENTS = {"REPROMPT_COUNT"}


def _argument_value(arg: Dict[str, Any]) -> Any:
    name = arg.get("name")
    if name in BOOL_ARGUMENTS:
        return bool(arg.get("boolValue", False))
    if name in INT_ARGUMENTS:
        raw = arg.get("intValue", arg.get("textValue"))
        try:
            return int(raw)
        except (TypeError, ValueError):
            return 0
    for key in ("boolValue", "intValue", "extension", "structuredValue", "datetimeValue", "textValue", "rawText"):
        if key in arg:
            v = arg[key]
            return int(v) if key == "intValue" else v
    return None


def parse_arguments(payload: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for inp in payload.get("inputs") or []:
        for arg in inp.get("arguments") or []:
            name = arg.get("name")
            if name:
                out[name] = _argument_value(arg)
    return out


def has_screen_output(payload: Dict[str, Any]) -> bool:
    caps = (payload.get("surface") or {}).get("capabilities") or []
    return any(c.get("name") == SCREEN_CAPABILITY for c in caps)


def parse_turn(body: WebhookIn) -> Turn:
    """Raises ValueError when the intent is not one this webhook handles."""
    qr = body.query_result
    payload = body.original_request.payload or {}
    return Turn(
        intent=Intent(qr.intent.display_name),
        session=body.session,
        params=dict(qr.parameters or {}),
        arguments=parse_arguments(payload),
        has_screen=has_screen_output(payload),
        conversation_id=(payload.get("conversation") or {}).get("conversationId"),
        state=load_session_state(qr.output_contexts),
    )
