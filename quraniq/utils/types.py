from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

@dataclass(frozen=True)
class Verse:
    """A single ayah from the static corpus."""
    surah_name: str
    surah_number: int
    ayah_number: int
    text: str
    topics: Tuple[str, ...] = ()

    @property
    def key(self) -> Tuple[int, int]:
        return (self.surah_number, self.ayah_number)

    @property
    def reference(self) -> str:
        return f"{self.surah_number}:{self.ayah_number}"

@dataclass
class SearchResult:
    """A verse returned by the retriever with its match score."""
    verse: Verse
    score: float
    matched_terms: List[str] = field(default_factory=list)

    @property
    def reference(self) -> str:
        return self.verse.reference

@dataclass(frozen=True)
class PromptPair:
    system_instruction: str
    user_instruction: str

JsonDict = Dict[str, Any]
