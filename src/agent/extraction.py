"""
agent.extraction - First generation stage: pull the exact value out of tool results.

The extraction call sees only the query and the tool results, never the
conversation or the narrative instructions, and must answer with the raw
value or the literal null. The data type is classified from the query
text, not from the extracted value.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Optional, Sequence

from agent.prompt import build_extraction_prompt
from agent.tools.base import ToolResult
from domain.cancellation import CancellationToken
from domain.exceptions import ExtractionParseError
from domain.models import DataType, ExtractedFact
from domain.ports import LanguageModelPort

logger = logging.getLogger(__name__)

FOUND_CONFIDENCE = 0.95
NOT_FOUND_CONFIDENCE = 0.5

_NULL_REPLIES = {"null", "none", "nil", "n/a"}
_FENCE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")
_QUOTES = ("\"", "'", "`")

# Checked in order; first hit wins.
_DATA_TYPE_KEYWORDS: list[tuple[DataType, tuple[str, ...]]] = [
    (DataType.EMAIL, ("email",)),
    (DataType.PASSWORD, ("password",)),
    (DataType.CODE, ("recovery", "code")),
    (DataType.URL, ("url", "link", "website")),
]


def classify_data_type(query: str) -> DataType:
    text = query.lower()
    for data_type, keywords in _DATA_TYPE_KEYWORDS:
        if any(k in text for k in keywords):
            return data_type
    return DataType.OTHER


def parse_extraction(reply: str) -> Optional[str]:
    """Return the extracted value, or None when the model answered null.

    Raises ExtractionParseError for an empty reply.
    """
    text = _FENCE.sub("", (reply or "").strip()).strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in _QUOTES:
        text = text[1:-1].strip()
    if not text:
        raise ExtractionParseError("Extraction reply was empty")
    if text.lower() in _NULL_REPLIES:
        return None
    return text


def serialize_results(results: Sequence[ToolResult]) -> str:
    return json.dumps([r.to_dict() for r in results], indent=2, ensure_ascii=False, default=str)


class Extractor:
    """Runs the extraction model call and classifies the result."""

    def __init__(self, llm: LanguageModelPort, temperature: float = 0.2):
        self._llm = llm
        self._temperature = temperature

    async def extract(
        self,
        query: str,
        results: Sequence[ToolResult],
        signal: Optional[CancellationToken] = None,
    ) -> ExtractedFact:
        data_type = classify_data_type(query)

        usable = [r for r in results if r.ok]
        if not usable:
            return ExtractedFact(data=None, data_type=data_type, confidence=NOT_FOUND_CONFIDENCE)

        prompt = build_extraction_prompt(query, serialize_results(usable))
        reply = await self._llm.complete(
            prompt, temperature=self._temperature, signal=signal,
        )

        try:
            data = parse_extraction(reply.text)
        except ExtractionParseError as e:
            logger.warning("Extraction output unusable, treating as not found: %s", e)
            data = None

        confidence = FOUND_CONFIDENCE if data else NOT_FOUND_CONFIDENCE
        return ExtractedFact(data=data, data_type=data_type, confidence=confidence)
