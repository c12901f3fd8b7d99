"""
Metered OpenAI client wrapper.

Prices every chat completion in Tuttu tokens without modifying behavior.
"""

import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI

from ..calls.models import LlmCallRecord, record_call
from ..core.aggregate import RunningTotals
from ..core.providers import Provider

logger = logging.getLogger(__name__)

# OpenAI finish reasons that differ from the chat SDK's names.
_FINISH_REASONS = {
    "tool_calls": "tool-calls",
    "function_call": "tool-calls",
    "content_filter": "content-filter",
}

_OPENAI_COMPATIBLE = (Provider.OPENAI, Provider.XAI)


def finish_reason_from_openai(finish_reason: Optional[str]) -> str:
    """Translate an OpenAI finish reason to the chat SDK's name."""
    if not finish_reason:
        return "unknown"
    return _FINISH_REASONS.get(finish_reason, finish_reason)


def usage_from_openai(usage: Any) -> Dict[str, Any]:
    """Read an OpenAI usage object into a raw usage report.

    Cached prompt tokens live under ``prompt_tokens_details.cached_tokens``
    and are a subset of ``prompt_tokens``.
    """
    if usage is None:
        return {}
    details = getattr(usage, "prompt_tokens_details", None)
    cached = getattr(details, "cached_tokens", None) if details is not None else None
    return {
        "prompt_tokens": usage.prompt_tokens,
        "completion_tokens": usage.completion_tokens,
        "total_tokens": usage.total_tokens,
        "cached_prompt_tokens": cached or 0,
    }


class MeteredOpenAI:
    """OpenAI client wrapper that records a priced call per completion.

    Works for OpenAI and for xAI through its OpenAI-compatible endpoint.
    Records and totals are kept in memory for the lifetime of the wrapper.
    """

    def __init__(self, model: str, provider: Provider = Provider.OPENAI, **client_kwargs: Any):
        """Initialize metered OpenAI client.

        Args:
            model: Model name (required)
            provider: Provider billed for the calls, OPENAI or XAI
            **client_kwargs: Passed to the OpenAI client, e.g. base_url or api_key

        Raises:
            ValueError: If model is missing/empty or provider is not OpenAI-compatible
        """
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")
        if provider not in _OPENAI_COMPATIBLE:
            raise ValueError(f"provider must be one of: {[p.value for p in _OPENAI_COMPATIBLE]}")

        self.model = model
        self.provider = provider
        self.client = OpenAI(**client_kwargs)
        self.records: List[LlmCallRecord] = []
        self.totals = RunningTotals()

    def chat(
        self,
        messages: List[Dict[str, Any]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs: Any
    ) -> Any:
        """Create chat completion with usage recording.

        API errors propagate unchanged and record nothing. A response without
        usage is still recorded, at zero cost.

        Args:
            messages: List of message dictionaries (required)
            temperature: Sampling temperature (optional)
            max_tokens: Maximum tokens to generate (optional)
            **kwargs: Additional OpenAI parameters

        Returns:
            OpenAI chat completion response

        Raises:
            ValueError: If messages is empty
            OpenAI API errors: Propagated without modification
        """
        if not messages:
            raise ValueError("messages is required and cannot be empty")

        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs
        )

        if not response.usage:
            logger.warning("Response %s from %s has no usage; recording zero usage", response.id, self.model)

        completion = []
        finish_reason = None
        if response.choices:
            choice = response.choices[0]
            finish_reason = choice.finish_reason
            completion.append({"role": "assistant", "content": choice.message.content})

        record = record_call(
            prompt=messages,
            completion=completion,
            raw_usage=usage_from_openai(response.usage),
            finish_reason=finish_reason_from_openai(finish_reason),
            model_id=self.model,
            provider=self.provider,
        )
        self.records.append(record)
        self.totals = self.totals.add(record)
        logger.info(
            "Recorded %s call to %s: %s Tuttu tokens",
            self.provider.value, self.model, record.tuttu_tokens,
        )

        return response
