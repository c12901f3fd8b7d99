"""
Tuttu token pricing.

Converts normalized token usage into Tuttu tokens, the flat cross-provider
billing unit, using a fixed per-provider price table.
"""

import logging
import math
from dataclasses import dataclass, field, fields, replace
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, Optional, Union

from .providers import Provider
from .usage import Usage

logger = logging.getLogger(__name__)

Number = Union[int, float]


@dataclass(frozen=True)
class PromptTokenCost:
    """Prompt cost in Tuttu tokens, split by cache status."""
    uncached: Number = 0
    cached: Number = 0

    def __add__(self, other: "PromptTokenCost") -> "PromptTokenCost":
        if not isinstance(other, PromptTokenCost):
            return NotImplemented
        return PromptTokenCost(
            uncached=self.uncached + other.uncached,
            cached=self.cached + other.cached,
        )


@dataclass(frozen=True)
class CompletionCosts:
    """Completion cost in Tuttu tokens per provider."""
    anthropic: Number = 0
    bedrock: Number = 0
    openai: Number = 0
    xai: Number = 0
    google: Number = 0

    def __add__(self, other: "CompletionCosts") -> "CompletionCosts":
        if not isinstance(other, CompletionCosts):
            return NotImplemented
        return CompletionCosts(**{
            f.name: getattr(self, f.name) + getattr(other, f.name)
            for f in fields(self)
        })


@dataclass(frozen=True)
class PromptCosts:
    """Prompt cost in Tuttu tokens per provider."""
    anthropic: PromptTokenCost = field(default_factory=PromptTokenCost)
    bedrock: PromptTokenCost = field(default_factory=PromptTokenCost)
    openai: PromptTokenCost = field(default_factory=PromptTokenCost)
    xai: PromptTokenCost = field(default_factory=PromptTokenCost)
    google: PromptTokenCost = field(default_factory=PromptTokenCost)

    def __add__(self, other: "PromptCosts") -> "PromptCosts":
        if not isinstance(other, PromptCosts):
            return NotImplemented
        return PromptCosts(**{
            f.name: getattr(self, f.name) + getattr(other, f.name)
            for f in fields(self)
        })


@dataclass(frozen=True)
class TuttuTokenBreakdown:
    """Per-provider, per-token-class decomposition of Tuttu token cost.

    The all-zero default is the identity for ``+``.
    """
    completion_tokens: CompletionCosts = field(default_factory=CompletionCosts)
    prompt_tokens: PromptCosts = field(default_factory=PromptCosts)

    def __add__(self, other: "TuttuTokenBreakdown") -> "TuttuTokenBreakdown":
        if not isinstance(other, TuttuTokenBreakdown):
            return NotImplemented
        return TuttuTokenBreakdown(
            completion_tokens=self.completion_tokens + other.completion_tokens,
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
        )


@dataclass(frozen=True)
class TuttuTokenResult:
    """Result of pricing one usage record."""
    tuttu_tokens: Number
    breakdown: TuttuTokenBreakdown


@dataclass(frozen=True)
class TokenClassCosts:
    """Cost of each token class for a single provider.

    ``completion`` is what gets billed; ``reported_completion`` is what the
    breakdown shows. They differ only for Google thinking tokens.
    """
    completion: Number
    reported_completion: Number
    uncached_prompt: Number
    cached_prompt: Number

    @property
    def total(self) -> Number:
        return self.completion + self.uncached_prompt + self.cached_prompt


@dataclass(frozen=True)
class ProviderPricing:
    """Tuttu tokens charged per reported token, by token class."""
    completion: int
    uncached_prompt: int
    cached_prompt: int
    rule: Callable[[Usage, "ProviderPricing"], TokenClassCosts]
    cache_write: Optional[int] = None

    def costs(self, usage: Usage) -> TokenClassCosts:
        return self.rule(usage, self)


def _cached_subset_costs(usage: Usage, pricing: ProviderPricing) -> TokenClassCosts:
    """Anthropic, OpenAI and xAI: cached prompt tokens are part of prompt_tokens."""
    completion = usage.completion_tokens * pricing.completion
    return TokenClassCosts(
        completion=completion,
        reported_completion=completion,
        uncached_prompt=(usage.prompt_tokens - usage.cached_prompt_tokens) * pricing.uncached_prompt,
        cached_prompt=usage.cached_prompt_tokens * pricing.cached_prompt,
    )


def _google_costs(usage: Usage, pricing: ProviderPricing) -> TokenClassCosts:
    """Google: thinking tokens bill as completion but are left out of the breakdown."""
    cached = usage.google_cached_content_token_count
    return TokenClassCosts(
        completion=(usage.completion_tokens + usage.google_thoughts_token_count) * pricing.completion,
        reported_completion=usage.completion_tokens * pricing.completion,
        uncached_prompt=(usage.prompt_tokens - cached) * pricing.uncached_prompt,
        cached_prompt=cached * pricing.cached_prompt,
    )


def _bedrock_costs(usage: Usage, pricing: ProviderPricing) -> TokenClassCosts:
    """Bedrock: cache reads and writes come on top of prompt_tokens and share one bucket."""
    completion = usage.completion_tokens * pricing.completion
    cache_write = usage.bedrock_cache_write_input_tokens * pricing.cache_write
    cache_read = usage.bedrock_cache_read_input_tokens * pricing.cached_prompt
    return TokenClassCosts(
        completion=completion,
        reported_completion=completion,
        uncached_prompt=usage.prompt_tokens * pricing.uncached_prompt,
        cached_prompt=cache_read + cache_write,
    )


@dataclass(frozen=True)
class PricingTable:
    """Fixed pricing table for priced providers."""
    prices: Dict[Provider, ProviderPricing]

    def get_pricing(self, provider: Provider) -> Optional[ProviderPricing]:
        """Get pricing for a provider, or None when it has no price table."""
        return self.prices.get(provider)


# Multipliers must stay in sync with what users have already been billed.
PRICING_TABLE = PricingTable({
    Provider.ANTHROPIC: ProviderPricing(
        completion=200, uncached_prompt=40, cached_prompt=3, rule=_cached_subset_costs
    ),
    Provider.OPENAI: ProviderPricing(
        completion=100, uncached_prompt=26, cached_prompt=6, rule=_cached_subset_costs
    ),
    Provider.XAI: ProviderPricing(
        completion=200, uncached_prompt=40, cached_prompt=3, rule=_cached_subset_costs
    ),
    Provider.GOOGLE: ProviderPricing(
        completion=140, uncached_prompt=18, cached_prompt=5, rule=_google_costs
    ),
    Provider.BEDROCK: ProviderPricing(
        completion=200, uncached_prompt=40, cached_prompt=3, cache_write=40, rule=_bedrock_costs
    ),
})

_unpriced = set(Provider) - {Provider.UNKNOWN} - set(PRICING_TABLE.prices)
if _unpriced:
    raise RuntimeError(f"Providers missing from PRICING_TABLE: {sorted(p.value for p in _unpriced)}")


def _round_half_up(value: Number) -> Number:
    if isinstance(value, float) and not math.isfinite(value):
        return value
    return int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_tuttu_tokens(usage: Usage, provider: Provider) -> TuttuTokenResult:
    """Price a usage record in Tuttu tokens.

    Unknown or unpriced providers cost nothing rather than failing the
    surrounding request.

    Args:
        usage: Normalized usage for one or more calls to the same provider
        provider: Provider that served the calls

    Returns:
        TuttuTokenResult with the rounded total and the per-provider breakdown
    """
    pricing = PRICING_TABLE.get_pricing(provider)
    if pricing is None:
        logger.warning("No Tuttu token pricing for provider %s; charging 0", provider)
        return TuttuTokenResult(tuttu_tokens=0, breakdown=TuttuTokenBreakdown())

    costs = pricing.costs(usage)
    key = provider.breakdown_key
    breakdown = TuttuTokenBreakdown(
        completion_tokens=replace(CompletionCosts(), **{key: costs.reported_completion}),
        prompt_tokens=replace(PromptCosts(), **{
            key: PromptTokenCost(uncached=costs.uncached_prompt, cached=costs.cached_prompt)
        }),
    )
    return TuttuTokenResult(tuttu_tokens=_round_half_up(costs.total), breakdown=breakdown)


USD_PER_MILLION_TUTTU_TOKENS = 0.1


def non_finite_text(value: Number) -> Optional[str]:
    """Display text for an infinite or NaN value, or None when it is finite."""
    if not isinstance(value, float) or math.isfinite(value):
        return None
    if math.isnan(value):
        return "NaN"
    return "Infinity" if value > 0 else "-Infinity"


def _to_fixed(value: float, places: int) -> Decimal:
    # Half-up on the exact binary value, as browsers do for toFixed.
    return Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def format_tuttu_token_price(
    tuttu_tokens: Number,
    usd_per_million: float = USD_PER_MILLION_TUTTU_TOKENS,
) -> str:
    """Format the dollar price of a Tuttu token count for display.

    Prices under one cent keep three decimals; larger prices are rounded to
    cents with trailing zeros dropped, so 2.50 renders as "2.5". Infinite and
    NaN counts render as "Infinity", "-Infinity" or "NaN".
    """
    raw_price = (tuttu_tokens / 1_000_000) * usd_per_million
    non_finite = non_finite_text(raw_price)
    if non_finite is not None:
        return non_finite
    if raw_price < 0.01:
        return str(_to_fixed(raw_price, 3))
    cents = float(_to_fixed(raw_price, 2))
    if cents.is_integer():
        return str(int(cents))
    return repr(cents)
