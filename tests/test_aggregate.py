"""
Unit tests for usage accumulation.

Tests monoid laws, incremental totals and conversation summaries.
"""

from tuttu_meter.calls.models import record_call
from tuttu_meter.core.aggregate import (
    ConversationSummary,
    RunningTotals,
    accumulate,
    accumulate_breakdowns,
    accumulate_usage,
    summarize_conversation,
)
from tuttu_meter.core.grouping import group_into_user_turns
from tuttu_meter.core.pricing import TuttuTokenBreakdown, calculate_tuttu_tokens
from tuttu_meter.core.providers import Provider
from tuttu_meter.core.usage import Usage

USAGE_A = Usage(prompt_tokens=200, completion_tokens=100, total_tokens=300, google_cached_content_token_count=50)
USAGE_B = Usage(prompt_tokens=200, completion_tokens=100, total_tokens=300,
                bedrock_cache_write_input_tokens=50, bedrock_cache_read_input_tokens=10)
USAGE_C = Usage(prompt_tokens=1000, completion_tokens=20, total_tokens=1020, cached_prompt_tokens=900)

BREAKDOWN_A = calculate_tuttu_tokens(USAGE_A, Provider.GOOGLE).breakdown
BREAKDOWN_B = calculate_tuttu_tokens(USAGE_B, Provider.BEDROCK).breakdown
BREAKDOWN_C = calculate_tuttu_tokens(USAGE_C, Provider.OPENAI).breakdown


def _record(usage, provider, finish_reason="stop", model_id="model"):
    return record_call(
        prompt=[{"role": "user", "content": "hi"}],
        completion=[],
        raw_usage={
            "prompt_tokens": usage.prompt_tokens,
            "completion_tokens": usage.completion_tokens,
            "total_tokens": usage.total_tokens,
            "cached_prompt_tokens": usage.cached_prompt_tokens,
            "bedrock_cache_write_input_tokens": usage.bedrock_cache_write_input_tokens,
            "bedrock_cache_read_input_tokens": usage.bedrock_cache_read_input_tokens,
            "google_cached_content_token_count": usage.google_cached_content_token_count,
            "google_thoughts_token_count": usage.google_thoughts_token_count,
        },
        finish_reason=finish_reason,
        model_id=model_id,
        provider=provider,
    )


class TestMonoidLaws:
    """Test that accumulation is a commutative monoid."""

    def test_empty_usage_is_zero(self):
        assert accumulate_usage([]) == Usage()

    def test_empty_breakdown_is_zero(self):
        assert accumulate_breakdowns([]) == TuttuTokenBreakdown()

    def test_zero_is_identity(self):
        assert accumulate_usage([USAGE_A, accumulate_usage([])]) == USAGE_A
        assert accumulate_breakdowns([accumulate_breakdowns([]), BREAKDOWN_A]) == BREAKDOWN_A

    def test_usage_commutative(self):
        assert accumulate_usage([USAGE_A, USAGE_B]) == accumulate_usage([USAGE_B, USAGE_A])

    def test_usage_associative(self):
        left = accumulate_usage([accumulate_usage([USAGE_A, USAGE_B]), USAGE_C])
        right = accumulate_usage([USAGE_A, accumulate_usage([USAGE_B, USAGE_C])])
        assert left == right

    def test_breakdown_commutative(self):
        assert accumulate_breakdowns([BREAKDOWN_A, BREAKDOWN_B]) == accumulate_breakdowns([BREAKDOWN_B, BREAKDOWN_A])

    def test_breakdown_associative(self):
        left = accumulate_breakdowns([accumulate_breakdowns([BREAKDOWN_A, BREAKDOWN_B]), BREAKDOWN_C])
        right = accumulate_breakdowns([BREAKDOWN_A, accumulate_breakdowns([BREAKDOWN_B, BREAKDOWN_C])])
        assert left == right

    def test_summed_breakdown_spans_providers(self):
        """Verify summing breakdowns from different providers keeps them separate."""
        total = accumulate_breakdowns([BREAKDOWN_A, BREAKDOWN_B, BREAKDOWN_C])
        assert total.completion_tokens.google == 14000
        assert total.completion_tokens.bedrock == 20000
        assert total.completion_tokens.openai == 2000
        assert total.prompt_tokens.bedrock.cached == 2030
        assert total.prompt_tokens.openai.cached == 5400
        assert total.completion_tokens.anthropic == 0

    def test_generic_accumulate(self):
        assert accumulate([USAGE_A], Usage()) == USAGE_A


class TestRunningTotals:
    """Test incremental accumulation over call records."""

    def setup_method(self):
        """Set up records from three providers."""
        self.records = [
            _record(USAGE_A, Provider.GOOGLE),
            _record(USAGE_B, Provider.BEDROCK),
            _record(USAGE_C, Provider.OPENAI),
            _record(USAGE_C, Provider.OPENAI),
        ]

    def test_incremental_matches_full_fold(self):
        """Verify adding records one by one equals folding them all."""
        totals = RunningTotals()
        for record in self.records:
            totals = totals.add(record)
        assert totals == RunningTotals.from_records(self.records)

    def test_order_does_not_matter(self):
        """Verify accumulation order does not change the totals."""
        forward = RunningTotals.from_records(self.records)
        backward = RunningTotals.from_records(list(reversed(self.records)))
        assert forward == backward

    def test_totals(self):
        """Verify usage, cost and call count totals."""
        totals = RunningTotals.from_records(self.records)
        assert totals.call_count == 4
        assert totals.usage == accumulate_usage([USAGE_A, USAGE_B, USAGE_C, USAGE_C])
        assert totals.tuttu_tokens == sum(record.tuttu_tokens for record in self.records)
        assert totals.tuttu_tokens == 16950 + 30030 + 2 * (2000 + 2600 + 5400)

    def test_usage_by_provider(self):
        """Verify usage stays separable by provider."""
        by_provider = RunningTotals.from_records(self.records).provider_usage()
        assert by_provider[Provider.GOOGLE] == USAGE_A
        assert by_provider[Provider.BEDROCK] == USAGE_B
        assert by_provider[Provider.OPENAI] == USAGE_C + USAGE_C

    def test_add_does_not_mutate(self):
        """Verify add returns a new total."""
        empty = RunningTotals()
        empty.add(self.records[0])
        assert empty == RunningTotals()


class TestSummarizeConversation:
    """Test conversation totals across user turns."""

    def test_empty_conversation(self):
        assert summarize_conversation([]) == ConversationSummary()

    def test_totals_across_turns(self):
        """Verify per-turn sums add up to conversation totals."""
        records = [
            _record(USAGE_C, Provider.OPENAI, finish_reason="tool-calls"),
            _record(USAGE_C, Provider.OPENAI),
            _record(USAGE_A, Provider.GOOGLE),
        ]
        summary = summarize_conversation(group_into_user_turns(records))
        assert summary.turn_count == 2
        assert summary.call_count == 3
        assert summary.prompt_tokens == 2200
        assert summary.cached_prompt_tokens == 1800
        assert summary.completion_tokens == 140
        assert summary.tuttu_tokens == 2 * 10000 + 16950
