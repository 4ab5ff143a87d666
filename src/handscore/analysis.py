"""The scorer's verdict and the parsing of its raw text reply.

Models are asked for a bare JSON object, but in practice some wrap it in a
Markdown code fence or add a sentence before it.  :func:`parse_analysis`
extracts the first JSON object it can find, checks its shape, and turns an
``{"error": ...}`` reply into :class:`~handscore.errors.ScoringError`.

Expected shape
--------------
``score``         number, 0–100
``isPassing``     boolean; derived from ``score >= 80`` when missing
``feedback``      list of strings
``strengths``     list of strings
``improvements``  list of strings
"""

import json
import re
from dataclasses import asdict, dataclass, field

from handscore.errors import ScoringError

PASSING_SCORE = 80

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
_LIST_FIELDS = ("feedback", "strengths", "improvements")


@dataclass
class HandwritingAnalysis:
    score: float
    is_passing: bool
    feedback: list[str] = field(default_factory=list)
    strengths: list[str] = field(default_factory=list)
    improvements: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["isPassing"] = data.pop("is_passing")
        return data


def _extract_json(text: str) -> dict:
    m = _FENCED_JSON.search(text)
    candidate = m.group(1) if m else text
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass

    # Fall back to the outermost braces, for replies with prose around the object.
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        raise ScoringError("Scorer reply contains no JSON object")
    try:
        return json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise ScoringError(f"Scorer reply is not valid JSON: {e}") from e


def _string_list(data: dict, key: str) -> list[str]:
    value = data.get(key, [])
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ScoringError(f"'{key}' must be a list of strings")
    return [str(item) for item in value]


def parse_analysis(text: str) -> HandwritingAnalysis:
    """Parse a scorer reply into a :class:`HandwritingAnalysis`."""
    if not text or not text.strip():
        raise ScoringError("Scorer returned an empty reply")

    data = _extract_json(text)
    if not isinstance(data, dict):
        raise ScoringError("Scorer reply must be a JSON object")
    if "error" in data:
        raise ScoringError(str(data["error"]))

    score = data.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ScoringError(f"'score' must be a number, got {score!r}")
    if not 0 <= score <= 100:
        raise ScoringError(f"'score' must be between 0 and 100, got {score}")

    is_passing = data.get("isPassing")
    if not isinstance(is_passing, bool):
        is_passing = score >= PASSING_SCORE

    return HandwritingAnalysis(
        score=float(score),
        is_passing=is_passing,
        **{key: _string_list(data, key) for key in _LIST_FIELDS},
    )
