"""
Response normalization for QuranIQ.
Separates the displayable answer from the follow-up suggestion block.
"""

import json
import re
from dataclasses import dataclass, field
from typing import List, Sequence, Union

from .composer import FOLLOW_UPS_SENTINEL, MAX_FOLLOW_UPS
from .utils.types import SearchResult, Verse


APOLOGY_MESSAGE = (
    "We could not retrieve the wisdom for this inquiry right now. "
    "Please try asking again in a moment."
)

VERSE = "verse"
REFLECTION = "reflection"
PLAIN = "plain"

REFLECTION_PREFIXES = ("Ask yourself:", "Deep Question:")


@dataclass
class NormalizedResponse:
    """A model answer with its follow-up suggestions split off."""
    answer: str
    suggestions: List[str] = field(default_factory=list)

    @property
    def paragraphs(self) -> List[str]:
        return [p.strip() for p in self.answer.split("\n") if p.strip()]


def _parse_suggestions(tail: str) -> List[str]:
    """Parse the block after the sentinel; anything incomplete or malformed gives []."""
    tail = tail.strip()
    # A partially streamed block has no closing bracket yet.
    if not tail.startswith("[") or not tail.endswith("]"):
        return []
    try:
        data = json.loads(tail)
    except ValueError:
        return []
    if not isinstance(data, list):
        return []
    suggestions = [s.strip() for s in data if isinstance(s, str) and s.strip()]
    return suggestions[:MAX_FOLLOW_UPS]


def normalize(raw: str) -> NormalizedResponse:
    """
    Split raw model text into answer and suggestions.

    The text before the first sentinel is always the answer, whatever
    happens to the part after it.

    Args:
        raw: Raw model output

    Returns:
        NormalizedResponse with trimmed answer and parsed suggestions
    """
    if not raw:
        return NormalizedResponse(answer="")

    if FOLLOW_UPS_SENTINEL not in raw:
        return NormalizedResponse(answer=raw.strip())

    answer, tail = raw.split(FOLLOW_UPS_SENTINEL, 1)
    return NormalizedResponse(answer=answer.strip(), suggestions=_parse_suggestions(tail))


def classify_paragraph(paragraph: str) -> str:
    """
    Tag a paragraph for rendering.

    Returns:
        "reflection" for self-examination prompts, "verse" for citations
        and quotations, "plain" otherwise
    """
    text = paragraph.strip()
    if any(prefix in text for prefix in REFLECTION_PREFIXES):
        return REFLECTION
    if re.search(r"Surah|Ayat|\[\d+:\d+\]", text):
        return VERSE
    if '"' in text and len(text) > 20:
        return VERSE
    return PLAIN


def format_verses_answer(verses: Sequence[Union[Verse, SearchResult]]) -> str:
    """Minimal answer built from retrieved verses alone."""
    if not verses:
        return APOLOGY_MESSAGE

    lines = [
        "We could not prepare a full reflection right now, "
        "but these verses speak to your question:",
        "",
    ]
    for item in verses:
        v = item.verse if isinstance(item, SearchResult) else item
        lines.append(f'Surah {v.surah_name} [{v.reference}]: "{v.text}"')
        lines.append("")
    lines.append("Ask yourself: how might these words guide you today?")
    return "\n".join(lines).strip()
