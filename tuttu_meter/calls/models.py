"""
Data models for LLM call records.

Defines the immutable record kept for every completed model call.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Tuple

from tuttu_meter.core.pricing import Number, calculate_tuttu_tokens
from tuttu_meter.core.providers import Provider
from tuttu_meter.core.usage import Usage, normalize_usage

FINISH_REASON_TOOL_CALLS = "tool-calls"


@dataclass(frozen=True)
class Message:
    """One chat message sent to or received from a model.

    ``content`` is either a string or a list of content parts such as
    ``{"type": "text", "text": "..."}``.
    """
    role: str
    content: Any

    @property
    def text(self) -> str:
        """Preview text of the message.

        Structured content renders each part as its text, or as the data of a
        file part given inline as a string, and joins the parts with spaces.
        Any other part renders empty.
        """
        if isinstance(self.content, str):
            return self.content
        if isinstance(self.content, (list, tuple)):
            return " ".join(_part_text(part) for part in self.content)
        return ""


def _part_text(part: Any) -> str:
    if not isinstance(part, dict):
        return ""
    if part.get("type") == "text":
        return part.get("text", "")
    if part.get("type") == "file" and isinstance(part.get("data"), str):
        return part["data"]
    return ""


@dataclass(frozen=True)
class LlmCallRecord:
    """Immutable record of one LLM network interaction.

    Created once the call completes, successfully or with partial usage,
    and never modified afterwards.
    """
    prompt: Tuple[Message, ...]
    completion: Tuple[Message, ...]
    usage: Usage
    finish_reason: str
    model_id: Optional[str]
    provider: Provider
    tuttu_tokens: Number = 0

    @property
    def is_tool_call(self) -> bool:
        """True when the model stopped to request tool calls."""
        return self.finish_reason == FINISH_REASON_TOOL_CALLS


def as_messages(messages: Optional[Iterable[Any]]) -> Tuple[Message, ...]:
    if not messages:
        return ()
    result = []
    for message in messages:
        if isinstance(message, Message):
            result.append(message)
        else:
            result.append(Message(role=message.get("role", ""), content=message.get("content")))
    return tuple(result)


def record_call(
    prompt: Optional[Iterable[Any]],
    completion: Optional[Iterable[Any]],
    raw_usage: Any,
    finish_reason: str,
    model_id: Optional[str],
    provider: Provider,
    provider_metadata: Optional[Any] = None,
) -> LlmCallRecord:
    """Normalize and price a completed call into an LlmCallRecord.

    Must be called exactly once per physical call; repeated calls are
    not deduplicated and would be billed twice.

    Args:
        prompt: Messages sent to the model (Message objects or dicts)
        completion: Messages the model returned
        raw_usage: Provider usage report, in any supported shape
        finish_reason: Terminal status of the call, e.g. "stop" or "tool-calls"
        model_id: Model identifier, if known
        provider: Provider that served the call
        provider_metadata: Optional provider metadata for cache/thinking counts

    Returns:
        Priced, immutable call record
    """
    usage = normalize_usage(raw_usage, provider_metadata)
    result = calculate_tuttu_tokens(usage, provider)
    return LlmCallRecord(
        prompt=as_messages(prompt),
        completion=as_messages(completion),
        usage=usage,
        finish_reason=finish_reason,
        model_id=model_id,
        provider=provider,
        tuttu_tokens=result.tuttu_tokens,
    )
