"""Escalating reprompts for misunderstood and silent turns.

Fallback turns are counted locally in SessionState. No-input turns are
counted by the platform, which passes REPROMPT_COUNT / IS_FINAL_REPROMPT.
"""

from typing import TYPE_CHECKING

from conversation import Intent, Turn
from responses import TurnResponse

if TYPE_CHECKING:
    from handlers import TurnContext


FALLBACK_MILD = "Sorry, what was that?"
FALLBACK_DETAILED = (
    "I didn't quite get that. I can tell you our hours "
    "or what classes we offer each day."
)
FALLBACK_CLOSE = "Sorry, I'm still having trouble. So let's stop here for now. Bye."

NO_INPUT_FIRST = "Sorry, I can't hear you."
NO_INPUT_SECOND = "I'm sorry, I still can't hear you."
NO_INPUT_CLOSE = "I'm sorry, I'm having trouble here. Maybe we should try this again later."


def reset_fallback_count(turn: Turn) -> None:
    """Runs before every handler: any understood turn clears the counter."""
    if turn.intent is not Intent.FALLBACK:
        turn.state.fallback_count = 0


def handle_fallback(turn: Turn, ctx: "TurnContext") -> TurnResponse:
    res = TurnResponse(turn.has_screen)
    turn.state.fallback_count += 1
    count = turn.state.fallback_count
    if count == 1:
        return res.ask(FALLBACK_MILD)
    if count == 2:
        return res.ask(FALLBACK_DETAILED)
    return res.close(FALLBACK_CLOSE)


def handle_no_input(turn: Turn, ctx: "TurnContext") -> TurnResponse:
    res = TurnResponse(turn.has_screen)
    reprompt_count = int(turn.argument("REPROMPT_COUNT") or 0)
    if turn.argument("IS_FINAL_REPROMPT") or reprompt_count >= 2:
        return res.close(NO_INPUT_CLOSE)
    if reprompt_count == 0:
        return res.ask(NO_INPUT_FIRST)
    return res.ask(NO_INPUT_SECOND)
