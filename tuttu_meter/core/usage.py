"""
Canonical token usage and provider usage normalization.

Maps each provider's usage report onto one fixed set of token classes.
"""

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class Usage:
    """Token usage for one or more LLM calls.

    Covers every provider's token classes. Fields a provider does not report
    stay at zero. Bedrock cache tokens are reported on top of prompt_tokens;
    every other cached count is a subset of prompt_tokens.
    """
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cached_prompt_tokens: int = 0
    bedrock_cache_write_input_tokens: int = 0
    bedrock_cache_read_input_tokens: int = 0
    google_cached_content_token_count: int = 0
    google_thoughts_token_count: int = 0

    def __add__(self, other: "Usage") -> "Usage":
        if not isinstance(other, Usage):
            return NotImplemented
        return Usage(**{
            f.name: getattr(self, f.name) + getattr(other, f.name)
            for f in fields(self)
        })


USAGE_FIELDS = tuple(f.name for f in fields(Usage))


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _read(source: Any, name: str) -> Any:
    """Read a snake_case field, or its camelCase twin, from a mapping or object."""
    if source is None:
        return None
    for key in (name, _camel_case(name)):
        if isinstance(source, Mapping):
            value = source.get(key)
        else:
            value = getattr(source, key, None)
        if value is not None:
            return value
    return None


def _metadata_value(metadata: Any, *path: str) -> Any:
    current = metadata
    for key in path:
        current = _read(current, key)
        if current is None:
            return None
    return current


def _first_present(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return 0


def normalize_usage(raw: Any, provider_metadata: Optional[Any] = None) -> Usage:
    """Normalize a provider usage report into a canonical Usage.

    Reads canonical field names (snake_case or camelCase) from the report,
    then Anthropic/Bedrock style ``cacheReadInputTokens`` and
    ``cacheWriteInputTokens`` (or ``cacheCreationInputTokens``) on the report,
    then the per-provider ``providerMetadata`` namespaces the chat SDK
    attaches to a generation. Values are passed through as reported: no
    clamping, no validation. Anything missing becomes 0.

    Args:
        raw: Usage report as a mapping or an object with attributes
        provider_metadata: Optional provider metadata; defaults to the
            ``providerMetadata`` entry on the report itself

    Returns:
        Usage with every field populated
    """
    if provider_metadata is None:
        provider_metadata = _read(raw, "provider_metadata")

    def meta(*path: str) -> Any:
        return _metadata_value(provider_metadata, *path)

    # Only one provider namespace is populated for a real generation.
    metadata_cached = [
        meta("anthropic", "cache_read_input_tokens"),
        meta("openai", "cached_prompt_tokens"),
        meta("xai", "cached_prompt_tokens"),
    ]
    reported_cached = [value for value in metadata_cached if value is not None]
    cached_from_metadata = sum(reported_cached) if reported_cached else None

    # Anthropic and Bedrock reports may carry their cache counts directly.
    # Pricing only reads the field belonging to the call's provider.
    flat_cache_read = _read(raw, "cache_read_input_tokens")
    flat_cache_write = _read(raw, "cache_write_input_tokens")
    if flat_cache_write is None:
        flat_cache_write = _read(raw, "cache_creation_input_tokens")

    return Usage(
        prompt_tokens=_first_present(_read(raw, "prompt_tokens")),
        completion_tokens=_first_present(_read(raw, "completion_tokens")),
        total_tokens=_first_present(_read(raw, "total_tokens")),
        cached_prompt_tokens=_first_present(
            _read(raw, "cached_prompt_tokens"),
            flat_cache_read,
            cached_from_metadata,
        ),
        bedrock_cache_write_input_tokens=_first_present(
            _read(raw, "bedrock_cache_write_input_tokens"),
            flat_cache_write,
            meta("bedrock", "usage", "cache_write_input_tokens"),
        ),
        bedrock_cache_read_input_tokens=_first_present(
            _read(raw, "bedrock_cache_read_input_tokens"),
            flat_cache_read,
            meta("bedrock", "usage", "cache_read_input_tokens"),
        ),
        google_cached_content_token_count=_first_present(
            _read(raw, "google_cached_content_token_count"),
            meta("google", "cached_content_token_count"),
        ),
        google_thoughts_token_count=_first_present(
            _read(raw, "google_thoughts_token_count"),
            meta("google", "thoughts_token_count"),
        ),
    )
