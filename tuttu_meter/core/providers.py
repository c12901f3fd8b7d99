"""
Model provider tags.

Identifies which upstream vendor served an LLM call.
"""

from enum import Enum
from typing import Optional


class Provider(Enum):
    """Upstream LLM vendor or runtime that served a completion."""
    ANTHROPIC = "Anthropic"
    BEDROCK = "Bedrock"
    OPENAI = "OpenAI"
    XAI = "XAI"
    GOOGLE = "Google"
    UNKNOWN = "Unknown"

    @property
    def breakdown_key(self) -> Optional[str]:
        """Attribute name used for this provider in cost breakdowns."""
        if self is Provider.UNKNOWN:
            return None
        return self.value.lower()

    @classmethod
    def from_name(cls, name: Optional[str]) -> "Provider":
        """Resolve a provider tag case-insensitively.

        Unrecognised or missing names resolve to UNKNOWN instead of raising.
        """
        if isinstance(name, Provider):
            return name
        if not name:
            return cls.UNKNOWN
        wanted = str(name).strip().lower()
        for provider in cls:
            if provider.value.lower() == wanted or provider.name.lower() == wanted:
                return provider
        return cls.UNKNOWN
