"""OpenAI GPT-4o vision provider."""

import logging
from typing import Any

import openai
from openai import OpenAI

from handscore.analysis import HandwritingAnalysis, parse_analysis
from handscore.errors import ScoringError
from handscore.preprocessing import ScoringPayload
from handscore.providers.base import BaseProvider
from handscore.prompt import HENGSHUI_SCORING_PROMPT, SCORING_INSTRUCTION

log = logging.getLogger(__name__)

SYSTEM_PROMPT = HENGSHUI_SCORING_PROMPT


class OpenAIProvider(BaseProvider):
    def __init__(self, api_key: str, model: str) -> None:
        self.client = OpenAI(api_key=api_key)
        self.model = model

    def score(self, payload: ScoringPayload) -> HandwritingAnalysis:
        content: list[Any] = [
            {
                "type": "image_url",
                "image_url": {
                    "url": f"data:{payload.mime_type};base64,{payload.image}",
                    "detail": "high",
                },
            },
            {"type": "text", "text": SCORING_INSTRUCTION},
        ]

        log.debug("Requesting score from %s (%dx%d)", self.model, payload.width, payload.height)
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                max_tokens=2048,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": content},
                ],
            )
        except openai.OpenAIError as e:
            raise ScoringError(f"OpenAI request failed: {e}") from e

        return parse_analysis(response.choices[0].message.content or "")
