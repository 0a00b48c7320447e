"""Tests for seedsoil.providers: LLM providers, registry, file extraction."""

from unittest.mock import MagicMock, patch

import pytest

from seedsoil.errors import ErrorKind, ProviderError, classify_exception
from seedsoil.providers import LLMProvider, get_registry
from seedsoil.providers.documents import FileTextExtractor
from seedsoil.providers.llm import (
    OPENROUTER_BASE_URL,
    OPENROUTER_DEFAULT_MODEL,
    OllamaProvider,
    OpenAICompatibleProvider,
    OpenRouterProvider,
    ollama_base_url,
)


def _chat_response(content):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


class TestOpenRouterProvider:
    def test_client_configuration(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "or-key")
        with patch("openai.OpenAI") as MockOpenAI:
            provider = OpenRouterProvider()
        kwargs = MockOpenAI.call_args.kwargs
        assert kwargs["api_key"] == "or-key"
        assert kwargs["base_url"] == OPENROUTER_BASE_URL
        assert kwargs["default_headers"] == {
            "HTTP-Referer": "https://seed-soil.app",
            "X-Title": "Seed & Soil",
        }
        assert provider.model == OPENROUTER_DEFAULT_MODEL

    def test_seedsoil_key_preferred(self, monkeypatch):
        monkeypatch.setenv("SEEDSOIL_API_KEY", "mine")
        monkeypatch.setenv("OPENROUTER_API_KEY", "other")
        with patch("openai.OpenAI") as MockOpenAI:
            OpenRouterProvider()
        assert MockOpenAI.call_args.kwargs["api_key"] == "mine"

    def test_missing_key(self):
        with patch("openai.OpenAI"):
            with pytest.raises(ValueError, match="API key required"):
                OpenRouterProvider()

    def test_generate_json_mode(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "k")
        with patch("openai.OpenAI") as MockOpenAI:
            client = MockOpenAI.return_value
            client.chat.completions.create.return_value = _chat_response('{"a": 1}')
            provider = OpenRouterProvider()
            text = provider.generate("sys", "user", max_tokens=50, json_mode=True)

        assert text == '{"a": 1}'
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "user"},
        ]
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["max_tokens"] == 50

    def test_no_choices(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "k")
        with patch("openai.OpenAI") as MockOpenAI:
            MockOpenAI.return_value.chat.completions.create.return_value = MagicMock(choices=[])
            assert OpenRouterProvider().generate("s", "u") is None

    def test_satisfies_protocol(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "k")
        with patch("openai.OpenAI"):
            assert isinstance(OpenRouterProvider(), LLMProvider)


class TestOpenAIProvider:
    def test_new_api_models(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "k")
        with patch("openai.OpenAI") as MockOpenAI:
            client = MockOpenAI.return_value
            client.chat.completions.create.return_value = _chat_response("x")
            OpenAICompatibleProvider(model="gpt-5-mini").generate("s", "u", max_tokens=10)
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["max_completion_tokens"] == 10
        assert "temperature" not in kwargs
        assert "response_format" not in kwargs


class TestAnthropicProvider:
    def test_generate(self, monkeypatch):
        pytest.importorskip("anthropic")
        from seedsoil.providers.llm import AnthropicProvider

        monkeypatch.setenv("ANTHROPIC_API_KEY", "k")
        with patch("anthropic.Anthropic") as MockAnthropic:
            client = MockAnthropic.return_value
            block = MagicMock()
            block.text = '{"gaps": []}'
            client.messages.create.return_value = MagicMock(content=[block])
            text = AnthropicProvider().generate("sys", "user", max_tokens=99)

        assert text == '{"gaps": []}'
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["system"] == "sys"
        assert kwargs["max_tokens"] == 99
        assert kwargs["messages"] == [{"role": "user", "content": "user"}]


class TestOllamaProvider:
    def test_base_url_from_env(self, monkeypatch):
        monkeypatch.setenv("OLLAMA_HOST", "gpu-box:11434")
        assert ollama_base_url() == "http://gpu-box:11434"
        assert ollama_base_url("https://o.example.com/") == "https://o.example.com"

    def test_generate(self):
        response = MagicMock()
        response.json.return_value = {"message": {"content": ' {"essence": "e"} '}}
        with patch("requests.post", return_value=response) as post:
            text = OllamaProvider(model="llama3.2").generate("s", "u", json_mode=True)

        assert text == '{"essence": "e"}'
        payload = post.call_args.kwargs["json"]
        assert post.call_args.args[0] == "http://localhost:11434/api/chat"
        assert payload["format"] == "json"
        assert payload["stream"] is False
        response.raise_for_status.assert_called_once()

    def test_http_error_becomes_provider_error(self):
        import requests

        failed = MagicMock(status_code=503)
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError(response=failed)
        with patch("requests.post", return_value=response):
            with pytest.raises(ProviderError) as exc_info:
                OllamaProvider().generate("s", "u")
        assert exc_info.value.status_code == 503
        assert classify_exception(exc_info.value) == ErrorKind.REMOTE_STATUS

    def test_connection_error_is_transport(self):
        import requests

        with patch("requests.post", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(ProviderError) as exc_info:
                OllamaProvider().generate("s", "u")
        assert exc_info.value.status_code is None
        assert classify_exception(exc_info.value) == ErrorKind.TRANSPORT


class TestRegistry:
    def test_builtin_providers_registered(self):
        names = get_registry().list_llm_providers()
        assert {"openrouter", "openai", "anthropic", "ollama"} <= set(names)

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown llm provider"):
            get_registry().create_llm("nope")

    def test_creation_failure_wrapped(self):
        with pytest.raises(RuntimeError, match="openrouter"):
            get_registry().create_llm("openrouter")

    def test_params_passed(self):
        provider = get_registry().create_llm("ollama", {"model": "qwen3", "base_url": "http://h:1"})
        assert provider.model == "qwen3"
        assert provider.base_url == "http://h:1"


class TestFileTextExtractor:
    def test_reads_markdown(self, tmp_path):
        path = tmp_path / "note.md"
        path.write_text("# Title\n\nBody", encoding="utf-8")
        assert FileTextExtractor().extract(path) == "# Title\n\nBody"

    def test_missing_file(self, tmp_path):
        with pytest.raises(IOError, match="not found"):
            FileTextExtractor().extract(tmp_path / "missing.txt")

    def test_unsupported_type(self, tmp_path):
        path = tmp_path / "photo.png"
        path.write_bytes(b"\x89PNG")
        with pytest.raises(ValueError, match="Unsupported"):
            FileTextExtractor().extract(path)

    def test_size_limit(self, tmp_path):
        path = tmp_path / "big.txt"
        path.write_text("x" * 100)
        with pytest.raises(IOError, match="too large"):
            FileTextExtractor(max_size=10).extract(path)

    def test_pdf(self, tmp_path):
        path = tmp_path / "paper.pdf"
        path.write_bytes(b"%PDF-1.4")
        pages = [MagicMock(), MagicMock(), MagicMock()]
        pages[0].extract_text.return_value = "page one"
        pages[1].extract_text.return_value = "   "
        pages[2].extract_text.return_value = "page three"
        with patch("pypdf.PdfReader") as MockReader:
            MockReader.return_value.pages = pages
            assert FileTextExtractor().extract(path) == "page one\n\npage three"

    def test_pdf_without_text(self, tmp_path):
        path = tmp_path / "scan.pdf"
        path.write_bytes(b"%PDF-1.4")
        page = MagicMock()
        page.extract_text.return_value = ""
        with patch("pypdf.PdfReader") as MockReader:
            MockReader.return_value.pages = [page]
            with pytest.raises(IOError, match="No text"):
                FileTextExtractor().extract(path)

    def test_registered(self):
        assert isinstance(get_registry().create_extractor("file"), FileTextExtractor)
