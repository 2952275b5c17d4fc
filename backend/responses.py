from typing import Any, Dict, List, Optional

from conversation import STATE_CONTEXT, SessionState


# Suggestion chip titles
class Suggestion:
    HOURS = "Ask about hours"
    CLASSES = "Learn about classes"
    DAILY = "Send daily reminders"
    NOTIFICATIONS = "Get notifications"


STATE_CONTEXT_LIFESPAN = 99


class TurnResponse:
    """What a handler wants said this turn, and whether the session stays open."""

    def __init__(self, has_screen: bool = False):
        self.has_screen = has_screen
        self.texts: List[str] = []
        self.suggestions: List[str] = []
        self.system_intent: Optional[Dict[str, Any]] = None
        self.expect_user_response = True

    def ask(self, text: str) -> "TurnResponse":
        self.texts.append(text)
        self.expect_user_response = True
        return self

    def close(self, text: str) -> "TurnResponse":
        self.texts.append(text)
        self.expect_user_response = False
        return self

    def suggest(self, *titles: str) -> "TurnResponse":
        # chips only render on display-capable clients
        if self.has_screen:
            self.suggestions.extend(titles)
        return self

    def helper(self, system_intent: Dict[str, Any]) -> "TurnResponse":
        self.system_intent = system_intent
        self.expect_user_response = True
        return self

    @property
    def text(self) -> str:
        return " ".join(t.strip() for t in self.texts if t.strip())

    def to_webhook(self, session: str, state: SessionState) -> Dict[str, Any]:
        rich: Dict[str, Any] = {
            "items": [{"simpleResponse": {"textToSpeech": t}} for t in self.texts],
        }
        if self.suggestions:
            rich["suggestions"] = [{"title": s} for s in self.suggestions]

        google: Dict[str, Any] = {
            "expectUserResponse": self.expect_user_response,
            "richResponse": rich,
        }
        if self.system_intent:
            google["systemIntent"] = self.system_intent

        return {
            "fulfillmentText": self.text,
            "payload": {"google": google},
            "outputContexts": [
                {
                    "name": f"{session}/contexts/{STATE_CONTEXT}",
                    "lifespanCount": STATE_CONTEXT_LIFESPAN,
                    "parameters": {"data": state.to_context_data()},
                }
            ],
        }


# ---------- Platform helpers ----------
def register_update(intent: str, frequency: str = "DAILY") -> Dict[str, Any]:
    """Ask the platform to re-invoke `intent` on a schedule (daily digest)."""
    return {
        "intent": "actions.intent.REGISTER_UPDATE",
        "data": {
            "@type": "type.googleapis.com/google.actions.v2.RegisterUpdateValueSpec",
            "intent": intent,
            "triggerContext": {"timeContext": {"frequency": frequency}},
        },
    }


def update_permission(intent: str) -> Dict[str, Any]:
    """Ask the user for permission to push notifications that open `intent`."""
    return {
        "intent": "actions.intent.PERMISSION",
        "data": {
            "@type": "type.googleapis.com/google.actions.v2.PermissionValueSpec",
            "permissions": ["UPDATE"],
            "updatePermissionValueSpec": {"intent": intent},
        },
    }
