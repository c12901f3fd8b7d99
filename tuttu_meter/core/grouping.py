"""
User-turn grouping of LLM calls.

A user turn is every call needed to answer one user message: any number of
calls that stop for tool calls, then one call that finishes the turn.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .aggregate import accumulate_breakdowns, accumulate_usage
from .pricing import Number, TuttuTokenBreakdown, calculate_tuttu_tokens
from tuttu_meter.calls.models import LlmCallRecord

NO_USER_MESSAGE = "No user message found"

_ARTIFACT_CLOSE_TAG = "</boltArtifact>"


@dataclass(frozen=True)
class TurnSummary:
    """Summed usage and cost for one user turn."""
    triggering_user_message: str
    prompt_tokens: Number
    cached_prompt_tokens: Number
    completion_tokens: Number
    tuttu_tokens: Number
    model_ids: Tuple[Optional[str], ...]
    breakdown: TuttuTokenBreakdown


@dataclass(frozen=True)
class UserTurnGroup:
    """Contiguous run of calls answering one user message."""
    calls: Tuple[LlmCallRecord, ...]
    summary: TurnSummary


def find_triggering_user_message(calls: Sequence[LlmCallRecord]) -> str:
    """Find the user message that started a turn.

    The prompt of the latest call normally ends with it, so calls and their
    prompt messages are both searched newest first.

    Returns:
        Text of the latest user message, or NO_USER_MESSAGE
    """
    for call in reversed(calls):
        for message in reversed(call.prompt):
            if message.role == "user":
                return message.text
    return NO_USER_MESSAGE


def strip_artifact_prefix(text: str) -> str:
    """Drop everything up to and including the last artifact block."""
    index = text.rfind(_ARTIFACT_CLOSE_TAG)
    if index == -1:
        return text
    return text[index + len(_ARTIFACT_CLOSE_TAG):]


def _summarize_turn(calls: Tuple[LlmCallRecord, ...]) -> TurnSummary:
    usage = accumulate_usage(call.usage for call in calls)
    model_ids = []
    for call in calls:
        if call.model_id not in model_ids:
            model_ids.append(call.model_id)
    return TurnSummary(
        triggering_user_message=find_triggering_user_message(calls),
        prompt_tokens=usage.prompt_tokens,
        cached_prompt_tokens=usage.cached_prompt_tokens,
        completion_tokens=usage.completion_tokens,
        tuttu_tokens=sum(call.tuttu_tokens or 0 for call in calls),
        model_ids=tuple(model_ids),
        breakdown=accumulate_breakdowns(
            calculate_tuttu_tokens(call.usage, call.provider).breakdown for call in calls
        ),
    )


def group_into_user_turns(calls: Sequence[LlmCallRecord]) -> List[UserTurnGroup]:
    """Partition a chronological call sequence into user turns.

    A group closes at the first call that did not stop for tool calls. A
    sequence that ends mid tool-call chain still yields its trailing group.

    Args:
        calls: Call records in chronological order

    Returns:
        Groups in order; concatenating their calls reproduces the input
    """
    groups: List[UserTurnGroup] = []
    current: List[LlmCallRecord] = []
    for index, call in enumerate(calls):
        current.append(call)
        if not call.is_tool_call or index == len(calls) - 1:
            group_calls = tuple(current)
            groups.append(UserTurnGroup(calls=group_calls, summary=_summarize_turn(group_calls)))
            current = []
    return groups
