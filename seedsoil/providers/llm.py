"""
LLM providers for distillation and synthesis.
"""

import logging
import os

from ..errors import ProviderError
from .base import get_registry

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENROUTER_DEFAULT_MODEL = "google/gemini-2.0-flash-exp:free"

# OpenRouter attributes traffic to the calling app by these headers
OPENROUTER_HEADERS = {
    "HTTP-Referer": "https://seed-soil.app",
    "X-Title": "Seed & Soil",
}


class OpenAICompatibleProvider:
    """
    Chat-completions provider for OpenAI and OpenAI-compatible endpoints.

    Requires: SEEDSOIL_API_KEY or OPENAI_API_KEY environment variable,
    unless ``api_key`` is given.
    """

    key_env_vars: tuple[str, ...] = ("SEEDSOIL_API_KEY", "OPENAI_API_KEY")

    def __init__(
        self,
        model: str = "gpt-4.1-mini",
        api_key: str | None = None,
        base_url: str | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 60.0,
    ):
        try:
            from openai import OpenAI
        except ImportError:
            raise RuntimeError(f"{type(self).__name__} requires 'openai' library")

        self.model = model
        key = api_key or next(
            (os.environ[v] for v in self.key_env_vars if os.environ.get(v)), None
        )
        if not key:
            raise ValueError(
                "API key required. Set " + " or ".join(self.key_env_vars)
            )

        kwargs: dict = {"api_key": key, "timeout": timeout}
        if base_url:
            kwargs["base_url"] = base_url
        if headers:
            kwargs["default_headers"] = headers
        self._client = OpenAI(**kwargs)

        # GPT-5 and reasoning models take max_completion_tokens and no temperature
        self._new_api = self.model.startswith(("gpt-5", "o3", "o4"))

    def _completion_kwargs(self, max_tokens: int) -> dict:
        if self._new_api:
            return {"max_completion_tokens": max_tokens}
        return {"max_tokens": max_tokens, "temperature": 0.3}

    def generate(
        self,
        system: str,
        user: str,
        *,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str | None:
        kwargs = self._completion_kwargs(max_tokens)
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        response = self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            **kwargs,
        )
        if not response.choices:
            return None
        return response.choices[0].message.content


class OpenRouterProvider(OpenAICompatibleProvider):
    """
    OpenRouter, via its OpenAI-compatible API.

    Requires: SEEDSOIL_API_KEY or OPENROUTER_API_KEY environment variable.
    The default model is a free tier Gemini Flash.
    """

    key_env_vars = ("SEEDSOIL_API_KEY", "OPENROUTER_API_KEY")

    def __init__(
        self,
        model: str = OPENROUTER_DEFAULT_MODEL,
        api_key: str | None = None,
        base_url: str = OPENROUTER_BASE_URL,
        timeout: float = 60.0,
    ):
        super().__init__(
            model=model,
            api_key=api_key,
            base_url=base_url,
            headers=OPENROUTER_HEADERS,
            timeout=timeout,
        )


class AnthropicProvider:
    """
    Provider using Anthropic's Messages API.

    Requires: SEEDSOIL_API_KEY or ANTHROPIC_API_KEY environment variable.
    The Messages API has no JSON response mode; the prompt asks for JSON
    and the decoder strips any code fence around it.
    """

    def __init__(
        self,
        model: str = "claude-haiku-4-5-20251001",
        api_key: str | None = None,
    ):
        try:
            from anthropic import Anthropic
        except ImportError:
            raise RuntimeError("AnthropicProvider requires 'anthropic' library")

        self.model = model
        key = (
            api_key or
            os.environ.get("SEEDSOIL_API_KEY") or
            os.environ.get("ANTHROPIC_API_KEY")
        )
        if not key:
            raise ValueError(
                "Anthropic API key required. Set SEEDSOIL_API_KEY or ANTHROPIC_API_KEY"
            )
        self._client = Anthropic(api_key=key)

    def generate(
        self,
        system: str,
        user: str,
        *,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str | None:
        response = self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            system=system,
            messages=[{"role": "user", "content": user}],
        )
        parts = [block.text for block in response.content if getattr(block, "text", None)]
        return "".join(parts) or None


def ollama_base_url(base_url: str | None = None) -> str:
    """Resolve the Ollama endpoint; OLLAMA_HOST may omit the scheme."""
    url = base_url or os.environ.get("OLLAMA_HOST") or "http://localhost:11434"
    if not url.startswith(("http://", "https://")):
        url = f"http://{url}"
    return url.rstrip("/")


class OllamaProvider:
    """
    Provider using a local Ollama server.

    Respects OLLAMA_HOST env var (default: http://localhost:11434).
    """

    def __init__(self, model: str = "llama3.2", base_url: str | None = None):
        self.model = model
        self.base_url = ollama_base_url(base_url)

    def generate(
        self,
        system: str,
        user: str,
        *,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str | None:
        import requests

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "stream": False,
            "options": {"num_predict": max_tokens},
        }
        if json_mode:
            payload["format"] = "json"

        try:
            response = requests.post(
                f"{self.base_url}/api/chat",
                json=payload,
                timeout=(10, 120),  # (connect, read)
            )
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise ProviderError(f"Ollama returned HTTP {status}", status_code=status) from e
        except requests.RequestException as e:
            raise ProviderError(f"Ollama request failed: {e}") from e
        content = response.json().get("message", {}).get("content", "")
        return content.strip() or None


_registry = get_registry()
_registry.register_llm("openrouter", OpenRouterProvider)
_registry.register_llm("openai", OpenAICompatibleProvider)
_registry.register_llm("anthropic", AnthropicProvider)
_registry.register_llm("ollama", OllamaProvider)
