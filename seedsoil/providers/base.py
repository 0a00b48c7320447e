"""
Provider protocols, prompts, and the provider registry.

An LLM provider is anything with a ``generate(system, user, ...)`` method
that returns the model's text. Providers raise on transport or HTTP
failure; the caller converts that into a typed outcome.
"""

from pathlib import Path
from typing import Protocol, runtime_checkable


DISTILL_SYSTEM_PROMPT = (
    "Act as a Socratic Mentor. Extract DNA from text. "
    'Return JSON: { "essence": "1 sentence", '
    '"nuggets": ["insight1", "insight2"], '
    '"action": "1 challenge" }'
)

SYNTHESIS_SYSTEM_PROMPT = (
    "Act as a Socratic Mentor. You are given the essences of everything the "
    "learner has studied, one per line. Identify what is missing: topics, "
    "connections or counter-arguments the learner has not yet explored. "
    'Return JSON: { "gaps": ["gap1", "gap2", "gap3"] }'
)


@runtime_checkable
class LLMProvider(Protocol):
    """
    Text generation from a system prompt and user content.

    ``json_mode`` asks the backend for a JSON object response where the
    backend supports it. Returns None when the backend produced no text.
    """

    def generate(
        self,
        system: str,
        user: str,
        *,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str | None:
        ...


@runtime_checkable
class TextExtractor(Protocol):
    """Reads a local file and returns its text content."""

    def supports(self, path: Path) -> bool:
        ...

    def extract(self, path: Path) -> str:
        ...


class ProviderRegistry:
    """
    Registry for discovering and instantiating providers by name.

    The store configuration names a provider (``[distill] provider = "ollama"``)
    and passes its params through to the constructor.
    """

    def __init__(self):
        self._llm_providers: dict[str, type] = {}
        self._extractors: dict[str, type] = {}
        self._lazy_loaded = False

    def _ensure_providers_loaded(self) -> None:
        """Lazily import provider modules so they register themselves."""
        if self._lazy_loaded:
            return
        self._lazy_loaded = True

        from . import documents  # noqa: F401
        from . import llm  # noqa: F401

    def register_llm(self, name: str, provider_class: type) -> None:
        """Register an LLM provider class."""
        self._llm_providers[name] = provider_class

    def register_extractor(self, name: str, provider_class: type) -> None:
        """Register a text extractor class."""
        self._extractors[name] = provider_class

    @staticmethod
    def _create_provider(kind: str, name: str, providers: dict, params: dict | None):
        if name not in providers:
            available = ", ".join(sorted(providers)) or "none"
            raise ValueError(
                f"Unknown {kind} provider: '{name}'. "
                f"Available providers: {available}."
            )
        try:
            return providers[name](**(params or {}))
        except ImportError as e:
            raise RuntimeError(
                f"Failed to create {kind} provider '{name}': {e}\n"
                f"Install required dependencies."
            ) from e
        except Exception as e:
            raise RuntimeError(
                f"Failed to create {kind} provider '{name}': {e}"
            ) from e

    def create_llm(self, name: str, params: dict | None = None) -> LLMProvider:
        """Create an LLM provider instance."""
        self._ensure_providers_loaded()
        return self._create_provider("llm", name, self._llm_providers, params)

    def create_extractor(self, name: str = "file", params: dict | None = None) -> TextExtractor:
        """Create a text extractor instance."""
        self._ensure_providers_loaded()
        return self._create_provider("extractor", name, self._extractors, params)

    def list_llm_providers(self) -> list[str]:
        self._ensure_providers_loaded()
        return sorted(self._llm_providers)


_registry = ProviderRegistry()


def get_registry() -> ProviderRegistry:
    """Get the global provider registry."""
    return _registry
