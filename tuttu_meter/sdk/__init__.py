"""
SDK for Tuttu Meter.

Provides metered model clients that price every call in Tuttu tokens.
"""

from .openai_client import MeteredOpenAI

__all__ = ["MeteredOpenAI"]
