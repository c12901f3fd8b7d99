"""
Display formatting for token counts and cost breakdowns.
"""

from decimal import Decimal, ROUND_HALF_UP

from .pricing import Number, TuttuTokenBreakdown, non_finite_text

# Order in which a single-call breakdown is inspected for its provider.
_DISPLAY_ORDER = ("anthropic", "openai", "xai", "google", "bedrock")


def _fixed(value: float, places: int) -> str:
    return str(Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))


def format_tuttu_token_count(num: Number) -> str:
    """Abbreviate a Tuttu token count: 1.2M, 34K or the plain number."""
    non_finite = non_finite_text(num)
    if non_finite is not None:
        return non_finite
    if num >= 1_000_000:
        return f"{_fixed(num / 1_000_000, 1)}M"
    if num >= 1_000:
        return f"{_fixed(num / 1_000, 0)}K"
    if isinstance(num, float) and num.is_integer():
        return str(int(num))
    return str(num)


def format_number(num: Number) -> str:
    """Format a number with thousands separators."""
    non_finite = non_finite_text(num)
    if non_finite is not None:
        return non_finite
    if isinstance(num, float) and num.is_integer():
        num = int(num)
    return f"{num:,}"


def describe_call_breakdown(breakdown: TuttuTokenBreakdown) -> str:
    """Summarize the breakdown of a single call.

    A single call is served by one provider, so the first provider with a
    completion cost is the one described.
    """
    for key in _DISPLAY_ORDER:
        if getattr(breakdown.completion_tokens, key) > 0:
            prompt = getattr(breakdown.prompt_tokens, key)
            return (
                f"{format_tuttu_token_count(prompt.uncached)} uncached, "
                f"{format_tuttu_token_count(prompt.cached)} cached, "
                f"{format_tuttu_token_count(getattr(breakdown.completion_tokens, key))} completion"
            )
    return "unknown"
