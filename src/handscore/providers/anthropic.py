"""Anthropic Claude vision provider."""

import logging
from typing import Any

import anthropic

from handscore.analysis import HandwritingAnalysis, parse_analysis
from handscore.errors import ScoringError
from handscore.preprocessing import ScoringPayload
from handscore.providers.base import BaseProvider
from handscore.prompt import HENGSHUI_SCORING_PROMPT, SCORING_INSTRUCTION

log = logging.getLogger(__name__)

SYSTEM_PROMPT = HENGSHUI_SCORING_PROMPT


class AnthropicProvider(BaseProvider):
    def __init__(self, api_key: str, model: str) -> None:
        self.client = anthropic.Anthropic(api_key=api_key)
        self.model = model

    def score(self, payload: ScoringPayload) -> HandwritingAnalysis:
        content: list[Any] = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": payload.mime_type,
                    "data": payload.image,
                },
            },
            {"type": "text", "text": SCORING_INSTRUCTION},
        ]

        log.debug("Requesting score from %s (%dx%d)", self.model, payload.width, payload.height)
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=2048,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": content}],
            )
        except anthropic.APIError as e:
            raise ScoringError(f"Anthropic request failed: {e}") from e

        text = "".join(block.text for block in response.content if block.type == "text")
        if not text:
            log.debug("No text in reply (stop_reason=%s)", response.stop_reason)
        return parse_analysis(text)
