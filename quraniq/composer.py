"""
Prompt composition for QuranIQ.
Turns retrieved verses, recent conversation and the question into a system/user instruction pair.
"""

from datetime import date
from typing import List, Optional, Sequence, Union

from .utils.types import PromptPair, SearchResult, Verse


FOLLOW_UPS_SENTINEL = ":::FOLLOW_UPS:::"
FOLLOW_UPS_SCHEMA_VERSION = 1
MAX_FOLLOW_UPS = 3

TARGET_WORDS = 400

HISTORY_TURNS = 2

NO_MATCHES_CONTEXT = (
    "No direct keyword matches found in the Quran. "
    "Rely on general Islamic knowledge and broader themes, and say that no specific verse was retrieved."
)

SYSTEM_PROMPT = """You are "QuranIQ", an intelligent Islamic knowledge companion.

Current Date: {today}

ROLE: You are a humble student of Islam, NOT a mufti or religious authority.

CORE PRINCIPLES:
1. PRIORITIZE the provided Quranic verses and cite them explicitly as [Surah Name S:A]
2. When quoting a provided verse, copy its text exactly as given
3. If NO verses are provided, answer from general Islamic wisdom with humility and say so
4. NEVER issue fatwas or definitive rulings on halal/haram
5. On any disputed matter, ALWAYS say that scholars differ and recommend consulting qualified scholars
6. Remain respectful (adab), measured, and transparent about your sources

FORMAT YOUR RESPONSE:
- Direct Answer (2-3 paragraphs)
- Supporting Verses (only if verses were provided, with citations)
- Practical Reflection (how to apply this wisdom today)

TONE: Serene, Intellectual, Concise (under {target_words} words unless complexity requires more)

FOLLOW-UP QUESTIONS (format v{schema_version}):
After your answer you may add the line {sentinel} followed by a JSON array of at most {max_follow_ups} short follow-up questions, e.g.
{sentinel}
["How can I practise patience daily?", "What did the Prophet say about hardship?"]
Write nothing after the closing bracket.

FORBIDDEN:
- Issuing fatwas
- Claiming definitive knowledge on disputed matters
- Sectarian bias
- Disrespecting any madhab or scholarly opinion"""


def _as_verse(item: Union[Verse, SearchResult]) -> Verse:
    return item.verse if isinstance(item, SearchResult) else item


def format_verse_line(verse: Verse) -> str:
    return f'- [Surah {verse.surah_name} {verse.reference}]: "{verse.text}"'


def format_verse_context(verses: Sequence[Union[Verse, SearchResult]]) -> str:
    """Enumerate verses so the model can cite them verbatim."""
    if not verses:
        return NO_MATCHES_CONTEXT

    lines = ["Here are authentic Quran verses found related to the query:"]
    for item in verses:
        lines.append(format_verse_line(_as_verse(item)))
    return "\n".join(lines)


def summarize_history(history: Optional[Sequence[dict]], turns: int = HISTORY_TURNS) -> str:
    """Join the content of the last few turns into a single line."""
    if not history or turns <= 0:
        return ""
    recent = list(history)[-turns:]
    parts = [str(msg.get("content", "")).strip() for msg in recent]
    return " -> ".join(p for p in parts if p)


def build_system_prompt(today: Optional[date] = None) -> str:
    today = today or date.today()
    return SYSTEM_PROMPT.format(
        today=today.isoformat(),
        target_words=TARGET_WORDS,
        schema_version=FOLLOW_UPS_SCHEMA_VERSION,
        sentinel=FOLLOW_UPS_SENTINEL,
        max_follow_ups=MAX_FOLLOW_UPS,
    )


def compose(
    question: str,
    verses: Sequence[Union[Verse, SearchResult]],
    recent_history: Optional[Sequence[dict]] = None,
    today: Optional[date] = None,
) -> PromptPair:
    """
    Build the instruction pair for one question.

    Args:
        question: The user's question
        verses: Retrieved verses (or search results), possibly empty
        recent_history: Prior messages [{"role": ..., "content": ...}]
        today: Date shown to the model (defaults to today)

    Returns:
        PromptPair with system and user instructions
    """
    context_summary = summarize_history(recent_history)

    parts: List[str] = [f'User Inquiry: "{question.strip()}"', "", format_verse_context(verses)]
    if context_summary:
        parts.extend(["", f"Conversation Context: {context_summary}"])
    parts.extend(["", "Provide your response now."])

    return PromptPair(
        system_instruction=build_system_prompt(today),
        user_instruction="\n".join(parts),
    )
