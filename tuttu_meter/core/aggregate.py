"""
Usage and cost accumulation.

Field-wise sums of usage and Tuttu token breakdowns, per turn and per
conversation. Every sum starts from the type's zero value, so accumulation
order never changes the result.
"""

from dataclasses import dataclass, field
from functools import reduce
from typing import TYPE_CHECKING, Iterable, Mapping, Tuple, TypeVar

from .pricing import Number, TuttuTokenBreakdown, calculate_tuttu_tokens
from .providers import Provider
from .usage import Usage
from tuttu_meter.calls.models import LlmCallRecord

if TYPE_CHECKING:
    from .grouping import UserTurnGroup

T = TypeVar("T", Usage, TuttuTokenBreakdown)


def accumulate(items: Iterable[T], zero: T) -> T:
    """Sum items field-wise, starting from ``zero``."""
    return reduce(lambda total, item: total + item, items, zero)


def accumulate_usage(items: Iterable[Usage]) -> Usage:
    """Sum usage records; an empty input gives the zero Usage."""
    return accumulate(items, Usage())


def accumulate_breakdowns(items: Iterable[TuttuTokenBreakdown]) -> TuttuTokenBreakdown:
    """Sum breakdowns; an empty input gives the all-zero breakdown."""
    return accumulate(items, TuttuTokenBreakdown())


@dataclass(frozen=True)
class RunningTotals:
    """Immutable running total over call records.

    ``add`` returns a new total, so a streaming response can rebind its
    total per finished call and always match a full fold over the same calls.
    """
    usage: Usage = field(default_factory=Usage)
    breakdown: TuttuTokenBreakdown = field(default_factory=TuttuTokenBreakdown)
    tuttu_tokens: Number = 0
    call_count: int = 0
    usage_by_provider: Tuple[Tuple[Provider, Usage], ...] = ()

    def add(self, record: LlmCallRecord) -> "RunningTotals":
        """Return the totals with one more call record included."""
        result = calculate_tuttu_tokens(record.usage, record.provider)
        by_provider = dict(self.usage_by_provider)
        by_provider[record.provider] = by_provider.get(record.provider, Usage()) + record.usage
        return RunningTotals(
            usage=self.usage + record.usage,
            breakdown=self.breakdown + result.breakdown,
            tuttu_tokens=self.tuttu_tokens + record.tuttu_tokens,
            call_count=self.call_count + 1,
            # Sorted so that totals built in any order compare equal.
            usage_by_provider=tuple(sorted(by_provider.items(), key=lambda item: item[0].value)),
        )

    def provider_usage(self) -> Mapping[Provider, Usage]:
        """Usage totals keyed by provider."""
        return dict(self.usage_by_provider)

    @classmethod
    def from_records(cls, records: Iterable[LlmCallRecord]) -> "RunningTotals":
        """Fold a sequence of call records into running totals."""
        return reduce(lambda totals, record: totals.add(record), records, cls())


@dataclass(frozen=True)
class ConversationSummary:
    """Totals across every user turn of a conversation."""
    prompt_tokens: Number = 0
    cached_prompt_tokens: Number = 0
    completion_tokens: Number = 0
    tuttu_tokens: Number = 0
    turn_count: int = 0
    call_count: int = 0


def summarize_conversation(groups: Iterable["UserTurnGroup"]) -> ConversationSummary:
    """Sum per-turn summaries into conversation totals."""
    summary = ConversationSummary()
    for group in groups:
        summary = ConversationSummary(
            prompt_tokens=summary.prompt_tokens + group.summary.prompt_tokens,
            cached_prompt_tokens=summary.cached_prompt_tokens + group.summary.cached_prompt_tokens,
            completion_tokens=summary.completion_tokens + group.summary.completion_tokens,
            tuttu_tokens=summary.tuttu_tokens + group.summary.tuttu_tokens,
            turn_count=summary.turn_count + 1,
            call_count=summary.call_count + len(group.calls),
        )
    return summary
