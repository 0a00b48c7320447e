"""
LLM and text-extraction providers.

Providers register themselves with the global registry on import;
``get_registry()`` loads them lazily on first use.
"""

from .base import (
    DISTILL_SYSTEM_PROMPT,
    SYNTHESIS_SYSTEM_PROMPT,
    LLMProvider,
    ProviderRegistry,
    TextExtractor,
    get_registry,
)

__all__ = [
    "DISTILL_SYSTEM_PROMPT",
    "SYNTHESIS_SYSTEM_PROMPT",
    "LLMProvider",
    "ProviderRegistry",
    "TextExtractor",
    "get_registry",
]
