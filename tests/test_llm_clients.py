"""Tests for the LLM clients with mocked provider SDKs."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from llm import LLMError, LLMProvider, Message, create_llm_client
from llm.anthropic_client import AnthropicClient
from llm.openai_client import OpenAIClient


MESSAGES = [
    Message(role="system", content="Responda em JSON"),
    Message(role="user", content="drone barato"),
]


class TestOpenAIClient:
    """Test the OpenAI client."""

    @patch("openai.OpenAI")
    def test_chat_json_mode(self, mock_openai):
        """Test request shape and response parsing."""
        sdk = mock_openai.return_value
        sdk.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content='{"items": []}'), finish_reason="stop")],
            usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        )

        client = OpenAIClient(api_key="sk-test", timeout=3.0)
        response = client.chat(MESSAGES, temperature=0.1, max_tokens=200, json_mode=True)

        assert response.content == '{"items": []}'
        assert response.usage["total_tokens"] == 15
        mock_openai.assert_called_once_with(api_key="sk-test", timeout=3.0, max_retries=0)
        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][1] == {"role": "user", "content": "drone barato"}

    @patch("openai.OpenAI")
    def test_provider_error_wrapped(self, mock_openai):
        """Test that SDK errors surface as LLMError."""
        mock_openai.return_value.chat.completions.create.side_effect = TimeoutError("read timeout")

        client = OpenAIClient(api_key="sk-test")

        with pytest.raises(LLMError) as excinfo:
            client.chat(MESSAGES)
        assert excinfo.value.provider == "openai"

    def test_missing_key(self, monkeypatch):
        """Test that a client without a key refuses to call."""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        client = OpenAIClient()

        with pytest.raises(RuntimeError):
            client.chat(MESSAGES)


class TestAnthropicClient:
    """Test the Anthropic client."""

    @patch("anthropic.Anthropic")
    def test_chat_json_prefill(self, mock_anthropic):
        """Test system extraction and the JSON prefill."""
        sdk = mock_anthropic.return_value
        sdk.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(type="text", text='"items": [], "message": "oi"}')],
            usage=SimpleNamespace(input_tokens=12, output_tokens=8),
            stop_reason="end_turn",
        )

        client = AnthropicClient(api_key="key")
        response = client.chat(MESSAGES, json_mode=True)

        assert response.content == '{"items": [], "message": "oi"}'
        assert response.usage["total_tokens"] == 20
        kwargs = sdk.messages.create.call_args.kwargs
        assert kwargs["system"] == "Responda em JSON"
        assert kwargs["messages"][-1] == {"role": "assistant", "content": "{"}

    @patch("anthropic.Anthropic")
    def test_provider_error_wrapped(self, mock_anthropic):
        """Test that SDK errors surface as LLMError."""
        mock_anthropic.return_value.messages.create.side_effect = ConnectionError("reset")

        with pytest.raises(LLMError) as excinfo:
            AnthropicClient(api_key="key").chat(MESSAGES)
        assert "reset" in str(excinfo.value)


class TestFactory:
    """Test client construction."""

    @patch("openai.OpenAI", MagicMock())
    def test_openai(self):
        client = create_llm_client(LLMProvider.OPENAI, api_key="sk", model="gpt-4o")
        assert client.get_provider_name() == "openai"
        assert client.get_model_name() == "gpt-4o"

    @patch("anthropic.Anthropic", MagicMock())
    def test_anthropic_default_model(self):
        client = create_llm_client(LLMProvider.ANTHROPIC, api_key="key")
        assert client.get_model_name() == AnthropicClient.DEFAULT_MODEL

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            create_llm_client("mistral")
