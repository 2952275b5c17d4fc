from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from fastapi import BackgroundTasks

from conversation import Intent, Turn
from fallback import handle_fallback, handle_no_input, reset_fallback_count
from notifier import PushNotifier
from responses import Suggestion, TurnResponse, register_update, update_permission
from schedule import Schedule, class_list, resolve_day
from subscriptions import CLASS_CANCELED_TOPIC, add_subscriber, resolve_user_id


@dataclass
class Services:
    """Built once at startup, shared read-only by every request."""

    schedule: Schedule
    subscribers: Any  # pymongo Collection (or anything with insert_one/find)
    notifier: PushNotifier


@dataclass
class TurnContext:
    services: Services
    background: BackgroundTasks
    now: Optional[datetime] = None


# ---------- Handlers ----------
def handle_welcome(turn: Turn, ctx: TurnContext) -> TurnResponse:
    return (
        TurnResponse(turn.has_screen)
        .ask(
            "Welcome to Action Gym, your local gym here to support your health goals. "
            "You can ask me about our hours or what classes we offer each day."
        )
        .suggest(Suggestion.HOURS, Suggestion.CLASSES)
    )


def handle_quit(turn: Turn, ctx: TurnContext) -> TurnResponse:
    return TurnResponse(turn.has_screen).close("Great chatting with you!")


def handle_hours(turn: Turn, ctx: TurnContext) -> TurnResponse:
    return (
        TurnResponse(turn.has_screen)
        .ask(
            "Our free weights and machines are available from 5am - 10pm, "
            "seven days a week. Can I help you with anything else?"
        )
        .suggest(Suggestion.CLASSES)
    )


def handle_class_list(turn: Turn, ctx: TurnContext) -> TurnResponse:
    res = TurnResponse(turn.has_screen)
    day = resolve_day(turn.params.get("day"), ctx.now)
    classes = class_list(ctx.services.schedule, day)
    message = f"On {day} we offer the following classes: {classes}. "

    # Re-invoked by the daily digest: keep it short and end the conversation.
    if "UPDATES" in turn.arguments:
        return res.close(message + "Hope to see you soon at Action Gym!")

    res.ask(
        message
        + "Would you like to receive daily reminders of upcoming classes, "
        "subscribe to notifications about cancelations, or can I help you with anything else?"
    )
    return res.suggest(Suggestion.DAILY, Suggestion.NOTIFICATIONS, Suggestion.HOURS)


def handle_setup_updates(turn: Turn, ctx: TurnContext) -> TurnResponse:
    return (
        TurnResponse(turn.has_screen)
        .ask("Setting up daily class updates")
        .helper(register_update(Intent.CLASS_LIST.value, "DAILY"))
    )


def handle_confirm_updates(turn: Turn, ctx: TurnContext) -> TurnResponse:
    res = TurnResponse(turn.has_screen)
    registered = turn.argument("REGISTER_UPDATE") or {}
    if isinstance(registered, dict) and registered.get("status") == "OK":
        res.ask(
            "Gotcha, I'll send you an update everyday with the list of classes. "
            "Can I help you with anything else?"
        )
    else:
        res.ask("I won't send you daily reminders. Can I help you with anything else?")
    return res.suggest(Suggestion.HOURS, Suggestion.CLASSES)


def handle_setup_push(turn: Turn, ctx: TurnContext) -> TurnResponse:
    return (
        TurnResponse(turn.has_screen)
        .ask("Update permission for setting up push notifications")
        .helper(update_permission(CLASS_CANCELED_TOPIC))
    )


def handle_confirm_push(turn: Turn, ctx: TurnContext) -> TurnResponse:
    res = TurnResponse(turn.has_screen)
    user_id = resolve_user_id(turn)
    if turn.argument("PERMISSION") and user_id:
        add_subscriber(ctx.services.subscribers, CLASS_CANCELED_TOPIC, user_id)
        res.ask(
            "Great, I'll notify you whenever there's a class cancelation. "
            "Can I help you with anything else?"
        )
    else:
        res.ask(
            "Okay, I won't send you notifications about class cancelations. "
            "Can I help you with anything else?"
        )
    return res.suggest(Suggestion.CLASSES, Suggestion.HOURS)


def handle_class_canceled(turn: Turn, ctx: TurnContext) -> TurnResponse:
    return TurnResponse(turn.has_screen).ask("Classname at classtime has been canceled.")


def handle_cancel_class(turn: Turn, ctx: TurnContext) -> TurnResponse:
    # Runs after the reply is sent; its outcome only shows up in logs.
    ctx.background.add_task(
        ctx.services.notifier.dispatch, ctx.services.subscribers, CLASS_CANCELED_TOPIC
    )
    return TurnResponse(turn.has_screen).ask("A notification has been sent to all subscribed users.")


Handler = Callable[[Turn, TurnContext], TurnResponse]

HANDLERS: Dict[Intent, Handler] = {
    Intent.WELCOME: handle_welcome,
    Intent.QUIT: handle_quit,
    Intent.HOURS: handle_hours,
    Intent.CLASS_LIST: handle_class_list,
    Intent.NO_INPUT: handle_no_input,
    Intent.FALLBACK: handle_fallback,
    Intent.SETUP_UPDATES: handle_setup_updates,
    Intent.CONFIRM_UPDATES: handle_confirm_updates,
    Intent.SETUP_PUSH: handle_setup_push,
    Intent.CONFIRM_PUSH: handle_confirm_push,
    Intent.CLASS_CANCELED: handle_class_canceled,
    Intent.CANCEL_CLASS: handle_cancel_class,
}

_missing = [i.value for i in Intent if i not in HANDLERS]
if _missing:
    raise RuntimeError(f"No handler registered for intents: {_missing}")


def route_turn(turn: Turn, ctx: TurnContext) -> TurnResponse:
    reset_fallback_count(turn)
    return HANDLERS[turn.intent](turn, ctx)
