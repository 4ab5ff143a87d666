"""Tests for the Anthropic and OpenAI provider implementations.

LLM API clients are mocked at their construction point so no network
calls are made and no API keys are required.
"""

import json
from unittest.mock import MagicMock, patch

import anthropic
import httpx
import openai
import pytest

from handscore.analysis import HandwritingAnalysis
from handscore.errors import ScoringError
from handscore.preprocessing import ScoringPayload
from handscore.prompt import HENGSHUI_SCORING_PROMPT
from handscore.providers.anthropic import AnthropicProvider
from handscore.providers.anthropic import SYSTEM_PROMPT as ANTHROPIC_SYSTEM_PROMPT
from handscore.providers.openai import OpenAIProvider
from handscore.providers.openai import SYSTEM_PROMPT as OPENAI_SYSTEM_PROMPT

JPEG_PAYLOAD = ScoringPayload(image="L2ZhS2UtanBlZw==", mime_type="image/jpeg", width=64, height=32)
PNG_PAYLOAD = ScoringPayload(image="ZmFrZS1wbmc=", mime_type="image/png", width=10, height=10)

REPLY = json.dumps({
    "score": 82,
    "isPassing": True,
    "feedback": ["基线稳定"],
    "strengths": ["字母圆润"],
    "improvements": ["g 的下伸笔画有圈"],
})


def _content_types(content: list) -> list[str]:
    return [block["type"] for block in content]


def _api_request() -> httpx.Request:
    return httpx.Request("POST", "https://api.example.test/v1")


def test_both_providers_share_the_scoring_prompt():
    assert ANTHROPIC_SYSTEM_PROMPT == HENGSHUI_SCORING_PROMPT
    assert OPENAI_SYSTEM_PROMPT == HENGSHUI_SCORING_PROMPT


# ══════════════════════════════════════════════════════════════════════════
# AnthropicProvider
# ══════════════════════════════════════════════════════════════════════════


class TestAnthropicProvider:
    @pytest.fixture
    def mock_anthropic_client(self):
        """Patch anthropic.Anthropic so no real client is created."""
        with patch("handscore.providers.anthropic.anthropic.Anthropic") as MockCls:
            yield MockCls.return_value

    @pytest.fixture
    def provider(self, mock_anthropic_client):
        return AnthropicProvider(api_key="test-key", model="claude-test-model")

    def _stub_response(self, mock_client: MagicMock, text: str) -> None:
        self._stub_blocks(mock_client, [MagicMock(type="text", text=text)])

    def _stub_blocks(self, mock_client: MagicMock, blocks: list) -> None:
        response = MagicMock(stop_reason="end_turn")
        response.content = blocks
        mock_client.messages.create.return_value = response

    def _content(self, mock_client: MagicMock) -> list:
        return mock_client.messages.create.call_args.kwargs["messages"][0]["content"]

    # ── Request layout ────────────────────────────────────────────────────

    def test_content_is_image_then_instruction(self, provider, mock_anthropic_client):
        self._stub_response(mock_anthropic_client, REPLY)
        provider.score(JPEG_PAYLOAD)
        assert _content_types(self._content(mock_anthropic_client)) == ["image", "text"]

    def test_image_block_carries_payload_unchanged(self, provider, mock_anthropic_client):
        self._stub_response(mock_anthropic_client, REPLY)
        provider.score(JPEG_PAYLOAD)
        source = self._content(mock_anthropic_client)[0]["source"]
        assert source == {
            "type": "base64",
            "media_type": "image/jpeg",
            "data": JPEG_PAYLOAD.image,
        }

    def test_media_type_follows_payload(self, provider, mock_anthropic_client):
        self._stub_response(mock_anthropic_client, REPLY)
        provider.score(PNG_PAYLOAD)
        assert self._content(mock_anthropic_client)[0]["source"]["media_type"] == "image/png"

    # ── API call parameters ───────────────────────────────────────────────

    def test_uses_the_configured_model(self, provider, mock_anthropic_client):
        self._stub_response(mock_anthropic_client, REPLY)
        provider.score(JPEG_PAYLOAD)
        assert mock_anthropic_client.messages.create.call_args.kwargs["model"] == "claude-test-model"

    def test_system_prompt_is_passed(self, provider, mock_anthropic_client):
        self._stub_response(mock_anthropic_client, REPLY)
        provider.score(JPEG_PAYLOAD)
        assert mock_anthropic_client.messages.create.call_args.kwargs["system"] == ANTHROPIC_SYSTEM_PROMPT

    # ── Return value and failures ─────────────────────────────────────────

    def test_returns_parsed_analysis(self, provider, mock_anthropic_client):
        self._stub_response(mock_anthropic_client, REPLY)
        result = provider.score(JPEG_PAYLOAD)
        assert isinstance(result, HandwritingAnalysis)
        assert result.score == 82
        assert result.improvements == ["g 的下伸笔画有圈"]

    def test_unparseable_reply_raises_scoring_error(self, provider, mock_anthropic_client):
        self._stub_response(mock_anthropic_client, "Sorry, I can't help with that.")
        with pytest.raises(ScoringError):
            provider.score(JPEG_PAYLOAD)

    def test_empty_content_raises_scoring_error(self, provider, mock_anthropic_client):
        self._stub_blocks(mock_anthropic_client, [])
        with pytest.raises(ScoringError, match="empty"):
            provider.score(JPEG_PAYLOAD)

    def test_reply_without_text_block_raises_scoring_error(self, provider, mock_anthropic_client):
        self._stub_blocks(mock_anthropic_client, [MagicMock(type="thinking")])
        with pytest.raises(ScoringError, match="empty"):
            provider.score(JPEG_PAYLOAD)

    def test_non_text_blocks_are_skipped(self, provider, mock_anthropic_client):
        self._stub_blocks(
            mock_anthropic_client,
            [MagicMock(type="thinking"), MagicMock(type="text", text=REPLY)],
        )
        assert provider.score(JPEG_PAYLOAD).score == 82

    def test_api_error_raises_scoring_error(self, provider, mock_anthropic_client):
        mock_anthropic_client.messages.create.side_effect = anthropic.APIConnectionError(
            request=_api_request()
        )
        with pytest.raises(ScoringError, match="Anthropic"):
            provider.score(JPEG_PAYLOAD)


# ══════════════════════════════════════════════════════════════════════════
# OpenAIProvider
# ══════════════════════════════════════════════════════════════════════════


class TestOpenAIProvider:
    @pytest.fixture
    def mock_openai_client(self):
        """Patch openai.OpenAI so no real client is created."""
        with patch("handscore.providers.openai.OpenAI") as MockCls:
            yield MockCls.return_value

    @pytest.fixture
    def provider(self, mock_openai_client):
        return OpenAIProvider(api_key="test-key", model="gpt-test-model")

    def _stub_response(self, mock_client: MagicMock, text: str | None) -> None:
        response = MagicMock()
        response.choices = [MagicMock(message=MagicMock(content=text))]
        mock_client.chat.completions.create.return_value = response

    def _user_content(self, mock_client: MagicMock) -> list:
        messages = mock_client.chat.completions.create.call_args.kwargs["messages"]
        return messages[1]["content"]

    # ── Request layout ────────────────────────────────────────────────────

    def test_content_is_image_then_instruction(self, provider, mock_openai_client):
        self._stub_response(mock_openai_client, REPLY)
        provider.score(JPEG_PAYLOAD)
        assert _content_types(self._user_content(mock_openai_client)) == ["image_url", "text"]

    def test_image_is_data_url_of_payload(self, provider, mock_openai_client):
        self._stub_response(mock_openai_client, REPLY)
        provider.score(JPEG_PAYLOAD)
        url = self._user_content(mock_openai_client)[0]["image_url"]["url"]
        assert url == f"data:image/jpeg;base64,{JPEG_PAYLOAD.image}"

    def test_png_payload_uses_png_data_url(self, provider, mock_openai_client):
        self._stub_response(mock_openai_client, REPLY)
        provider.score(PNG_PAYLOAD)
        url = self._user_content(mock_openai_client)[0]["image_url"]["url"]
        assert url.startswith("data:image/png;base64,")

    def test_uses_high_detail(self, provider, mock_openai_client):
        self._stub_response(mock_openai_client, REPLY)
        provider.score(JPEG_PAYLOAD)
        assert self._user_content(mock_openai_client)[0]["image_url"]["detail"] == "high"

    # ── API call parameters ───────────────────────────────────────────────

    def test_system_message_is_first(self, provider, mock_openai_client):
        self._stub_response(mock_openai_client, REPLY)
        provider.score(JPEG_PAYLOAD)
        messages = mock_openai_client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": OPENAI_SYSTEM_PROMPT}

    def test_requests_json_response_format(self, provider, mock_openai_client):
        self._stub_response(mock_openai_client, REPLY)
        provider.score(JPEG_PAYLOAD)
        kwargs = mock_openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}

    def test_uses_the_configured_model(self, provider, mock_openai_client):
        self._stub_response(mock_openai_client, REPLY)
        provider.score(JPEG_PAYLOAD)
        assert mock_openai_client.chat.completions.create.call_args.kwargs["model"] == "gpt-test-model"

    # ── Return value and failures ─────────────────────────────────────────

    def test_returns_parsed_analysis(self, provider, mock_openai_client):
        self._stub_response(mock_openai_client, REPLY)
        result = provider.score(JPEG_PAYLOAD)
        assert result.is_passing is True
        assert result.strengths == ["字母圆润"]

    def test_none_content_raises_scoring_error(self, provider, mock_openai_client):
        self._stub_response(mock_openai_client, None)
        with pytest.raises(ScoringError, match="empty"):
            provider.score(JPEG_PAYLOAD)

    def test_error_payload_raises_scoring_error(self, provider, mock_openai_client):
        self._stub_response(mock_openai_client, '{"error": "quota exceeded"}')
        with pytest.raises(ScoringError, match="quota exceeded"):
            provider.score(JPEG_PAYLOAD)

    def test_api_error_raises_scoring_error(self, provider, mock_openai_client):
        mock_openai_client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=_api_request()
        )
        with pytest.raises(ScoringError, match="OpenAI"):
            provider.score(JPEG_PAYLOAD)
