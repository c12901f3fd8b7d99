"""
Unit tests for user-turn grouping.

Tests partitioning, turn summaries and user message lookup.
"""

from tuttu_meter.calls.models import Message, record_call
from tuttu_meter.core.grouping import (
    NO_USER_MESSAGE,
    find_triggering_user_message,
    group_into_user_turns,
    strip_artifact_prefix,
)
from tuttu_meter.core.providers import Provider


def _call(finish_reason, prompt=None, model_id="claude-sonnet-4-0", provider=Provider.ANTHROPIC,
          prompt_tokens=100, completion_tokens=10, cached=0):
    return record_call(
        prompt=prompt if prompt is not None else [{"role": "user", "content": "hello"}],
        completion=[{"role": "assistant", "content": "ok"}],
        raw_usage={
            "promptTokens": prompt_tokens,
            "completionTokens": completion_tokens,
            "totalTokens": prompt_tokens + completion_tokens,
            "cachedPromptTokens": cached,
        },
        finish_reason=finish_reason,
        model_id=model_id,
        provider=provider,
    )


class TestGroupIntoUserTurns:
    """Test partitioning of call sequences."""

    def test_empty_sequence(self):
        """Verify no calls give no groups."""
        assert group_into_user_turns([]) == []

    def test_single_terminal_call_is_own_group(self):
        """Verify a non tool-call finish closes a one-call group."""
        calls = [_call("stop")]
        groups = group_into_user_turns(calls)
        assert len(groups) == 1
        assert groups[0].calls == tuple(calls)

    def test_tool_call_chain_then_terminal(self):
        """Verify N tool-call calls plus one terminal call form one group."""
        calls = [_call("tool-calls"), _call("tool-calls"), _call("stop"), _call("length")]
        groups = group_into_user_turns(calls)
        assert [len(group.calls) for group in groups] == [3, 1]

    def test_trailing_tool_call_chain_is_kept(self):
        """Verify a sequence ending mid tool-call chain still emits its group."""
        calls = [_call("stop"), _call("tool-calls"), _call("tool-calls")]
        groups = group_into_user_turns(calls)
        assert [len(group.calls) for group in groups] == [1, 2]
        assert groups[-1].calls[-1].finish_reason == "tool-calls"

    def test_groups_partition_input(self):
        """Verify concatenated groups reproduce the input in order."""
        reasons = ["tool-calls", "stop", "error", "tool-calls", "tool-calls", "stop", "tool-calls"]
        calls = [_call(reason, prompt_tokens=index) for index, reason in enumerate(reasons)]
        groups = group_into_user_turns(calls)

        flattened = [call for group in groups for call in group.calls]
        assert flattened == calls
        for group in groups[:-1]:
            assert group.calls[-1].finish_reason != "tool-calls"
        for group in groups:
            assert all(call.finish_reason == "tool-calls" for call in group.calls[:-1])


class TestTurnSummary:
    """Test per-turn sums."""

    def test_sums_tokens(self):
        """Verify token sums across the calls of a turn."""
        calls = [
            _call("tool-calls", prompt_tokens=1000, completion_tokens=100, cached=800),
            _call("stop", prompt_tokens=1500, completion_tokens=200, cached=1200),
        ]
        summary = group_into_user_turns(calls)[0].summary
        assert summary.prompt_tokens == 2500
        assert summary.cached_prompt_tokens == 2000
        assert summary.completion_tokens == 300
        assert summary.tuttu_tokens == calls[0].tuttu_tokens + calls[1].tuttu_tokens

    def test_breakdown_is_summed(self):
        """Verify the turn breakdown sums each call's breakdown."""
        calls = [
            _call("tool-calls", provider=Provider.OPENAI, prompt_tokens=10, completion_tokens=1),
            _call("stop", provider=Provider.GOOGLE, prompt_tokens=10, completion_tokens=1),
        ]
        breakdown = group_into_user_turns(calls)[0].summary.breakdown
        assert breakdown.completion_tokens.openai == 100
        assert breakdown.completion_tokens.google == 140
        assert breakdown.prompt_tokens.openai.uncached == 260
        assert breakdown.prompt_tokens.google.uncached == 180

    def test_model_ids_deduplicated_in_order(self):
        """Verify distinct model ids keep first-appearance order."""
        calls = [
            _call("tool-calls", model_id="gpt-5"),
            _call("tool-calls", model_id="claude-sonnet-4-0"),
            _call("tool-calls", model_id="gpt-5"),
            _call("stop", model_id="gemini-2.5-pro"),
        ]
        summary = group_into_user_turns(calls)[0].summary
        assert summary.model_ids == ("gpt-5", "claude-sonnet-4-0", "gemini-2.5-pro")


class TestFindTriggeringUserMessage:
    """Test lookup of the user message that started a turn."""

    def test_latest_user_message_wins(self):
        """Verify the last user message of the last call is returned."""
        calls = [
            _call("tool-calls", prompt=[{"role": "user", "content": "first"}]),
            _call("stop", prompt=[
                {"role": "user", "content": "older"},
                {"role": "assistant", "content": "reply"},
                {"role": "user", "content": "newest"},
                {"role": "tool", "content": "result"},
            ]),
        ]
        assert find_triggering_user_message(calls) == "newest"

    def test_falls_back_to_earlier_calls(self):
        """Verify earlier calls are searched when later prompts lack a user message."""
        calls = [
            _call("tool-calls", prompt=[{"role": "user", "content": "build it"}]),
            _call("stop", prompt=[{"role": "system", "content": "sys"}]),
        ]
        assert find_triggering_user_message(calls) == "build it"

    def test_structured_content(self):
        """Verify text and inline file parts are joined with spaces."""
        calls = [_call("stop", prompt=[{"role": "user", "content": [
            {"type": "text", "text": "a"},
            {"type": "file", "data": "b", "mimeType": "text/plain"},
            {"type": "text", "text": "c"},
        ]}])]
        assert find_triggering_user_message(calls) == "a b c"

    def test_other_parts_render_empty(self):
        """Verify parts without preview text keep their place as empty strings."""
        calls = [_call("stop", prompt=[{"role": "user", "content": [
            {"type": "text", "text": "line one"},
            {"type": "image", "image": "..."},
            {"type": "file", "data": b"binary", "mimeType": "image/png"},
            {"type": "text", "text": "line two"},
        ]}])]
        assert find_triggering_user_message(calls) == "line one   line two"

    def test_unstructured_content_renders_empty(self):
        """Verify content that is neither text nor parts renders empty."""
        calls = [_call("stop", prompt=[{"role": "user", "content": {"unexpected": True}}])]
        assert find_triggering_user_message(calls) == ""

    def test_not_found_returns_sentinel(self):
        """Verify a turn without user messages returns the sentinel."""
        calls = [_call("stop", prompt=[{"role": "system", "content": "sys"}])]
        assert find_triggering_user_message(calls) == NO_USER_MESSAGE
        assert find_triggering_user_message([]) == NO_USER_MESSAGE

    def test_summary_uses_lookup(self):
        """Verify the turn summary carries the triggering message."""
        calls = [_call("stop", prompt=[Message(role="user", content="make a game")])]
        assert group_into_user_turns(calls)[0].summary.triggering_user_message == "make a game"


class TestStripArtifactPrefix:
    """Test removal of artifact blocks from user messages."""

    def test_strips_through_last_artifact(self):
        text = "<boltArtifact>a</boltArtifact>x<boltArtifact>b</boltArtifact>Add login"
        assert strip_artifact_prefix(text) == "Add login"

    def test_without_artifact(self):
        assert strip_artifact_prefix("Add login") == "Add login"
