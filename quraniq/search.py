"""
Verse retrieval for QuranIQ.
Keyword (BM25) search over a static corpus of translated ayahs and their topic tags.
"""

import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from rank_bm25 import BM25Okapi

from .utils.loaders import load_verses, sort_verses, summarize_surahs
from .utils.types import SearchResult, Verse


logger = logging.getLogger(__name__)

# Words that carry no topical signal in a question about the Quran.
STOPWORDS = frozenset("""
a about above after again all also am an and any are as at be been being but by
can could did do does doing for from had has have having he her him his how i if
in into is it its me my no not of on or our should so some than that the their
them then there these they this those to too us was we were what when where which
who whom why will with would you your
allah god quran quranic islam islamic muslim muslims verse verses ayah ayat surah
say says said tell teach teaches mention mentions regarding according view
""".split())

# Extra weight for each question token that hits a verse's topic tag.
TOPIC_BONUS = 2.0

MIN_SUBSTRING_LEN = 4

DIRECT_REFERENCE_SCORE = 1000.0


def tokenize(text: str) -> List[str]:
    """Lowercase word tokens with stopwords removed."""
    tokens = re.findall(r"[a-z]+(?:'[a-z]+)?", text.lower())
    return [t for t in tokens if t not in STOPWORDS]


def _topic_matches(token: str, topic: str) -> bool:
    if token == topic:
        return True
    if len(token) < MIN_SUBSTRING_LEN or len(topic) < MIN_SUBSTRING_LEN:
        return False
    return token in topic or topic in token


class VerseSearch:
    """Keyword search engine over the verse corpus."""

    def __init__(self, corpus_path: str = None, verses: Optional[Sequence[Verse]] = None):
        """
        Initialize the search engine.

        Args:
            corpus_path: Path to a verses.json file (defaults to the packaged corpus)
            verses: Pre-loaded verses; takes precedence over corpus_path
        """
        if corpus_path is None:
            corpus_path = os.getenv("QURANIQ_CORPUS_PATH") or None
        self.corpus_path = Path(corpus_path) if corpus_path else None

        self.verses: List[Verse] = []
        self.verse_index: Dict[Tuple[int, int], Verse] = {}

        self.bm25: Optional[BM25Okapi] = None
        self.tokenized_corpus: List[List[str]] = []
        self.text_tokens: List[set] = []

        self._load_data(verses)

    def _load_data(self, verses: Optional[Sequence[Verse]]):
        """Load the corpus and build the keyword index."""
        if verses is not None:
            self.verses = sort_verses(verses)
        else:
            self.verses = load_verses(self.corpus_path)
        self.verse_index = {v.key: v for v in self.verses}
        logger.debug("Loaded %d verses", len(self.verses))

        self._build_bm25_index()

    def _build_bm25_index(self):
        """Build BM25 index from verse text plus topic tags."""
        if not self.verses:
            return

        self.text_tokens = [set(tokenize(v.text)) for v in self.verses]
        self.tokenized_corpus = [
            tokenize(v.text) + [t for topic in v.topics for t in tokenize(topic)]
            for v in self.verses
        ]
        self.bm25 = BM25Okapi(self.tokenized_corpus)

    def _parse_verse_reference(self, query: str) -> Optional[Tuple[int, int]]:
        """
        Parse a verse reference from a query string.

        Handles formats like:
        - "2:155"
        - "Surah 2 ayah 155" / "surah 2 verse 155"
        """
        match = re.search(r"\b(\d{1,3}):(\d{1,3})\b", query)
        if match:
            return int(match.group(1)), int(match.group(2))

        match = re.search(r"\bsurah\s+(\d{1,3})\s*,?\s+(?:ayah|ayat|verse)\s+(\d{1,3})\b", query, re.IGNORECASE)
        if match:
            return int(match.group(1)), int(match.group(2))

        return None

    def _match_terms(self, idx: int, tokens: Sequence[str]) -> Tuple[List[str], int]:
        """Return the query tokens that overlap verse idx, and how many hit a topic tag."""
        verse = self.verses[idx]
        matched = []
        topic_hits = 0
        for token in tokens:
            on_topic = any(_topic_matches(token, topic) for topic in verse.topics)
            if on_topic:
                topic_hits += 1
            if on_topic or token in self.text_tokens[idx]:
                matched.append(token)
        return matched, topic_hits

    def search_keyword(self, query: str, top_k: int = 5) -> List[SearchResult]:
        """
        Search using BM25 keyword matching.

        Args:
            query: Free-text question
            top_k: Number of results to return

        Returns:
            List of SearchResult objects, best match first
        """
        if self.bm25 is None:
            return []

        tokenized_query = list(dict.fromkeys(tokenize(query)))
        if not tokenized_query:
            return []

        scores = np.asarray(self.bm25.get_scores(tokenized_query), dtype=float)

        candidates = []
        for idx in range(len(self.verses)):
            matched, topic_hits = self._match_terms(idx, tokenized_query)
            if not matched:
                continue
            score = max(float(scores[idx]), 0.0) + TOPIC_BONUS * topic_hits
            candidates.append((score, idx, matched))

        # Stable sort keeps corpus order for equal scores.
        order = np.argsort(-np.array([c[0] for c in candidates]), kind="stable")

        results = []
        for pos in order[:top_k]:
            score, idx, matched = candidates[pos]
            results.append(SearchResult(verse=self.verses[idx], score=score, matched_terms=matched))
        return results

    def search(self, question: str, top_k: int = 5) -> List[SearchResult]:
        """
        Find the verses most relevant to a question.

        A direct reference such as "2:155" is returned first when it exists
        in the corpus, followed by keyword matches.
        """
        if not question or not question.strip() or top_k <= 0:
            return []

        results: List[SearchResult] = []
        ref = self._parse_verse_reference(question)
        if ref and ref in self.verse_index:
            results.append(SearchResult(verse=self.verse_index[ref], score=DIRECT_REFERENCE_SCORE, matched_terms=[]))

        for r in self.search_keyword(question, top_k=top_k):
            if results and r.verse.key == results[0].verse.key:
                continue
            results.append(r)

        return results[:top_k]

    def get_verse(self, surah_number: int, ayah_number: int) -> Optional[Verse]:
        """Get a specific verse by reference."""
        return self.verse_index.get((surah_number, ayah_number))

    def get_surah(self, surah_number: int) -> List[Verse]:
        """All corpus verses of one surah, in order."""
        return [v for v in self.verses if v.surah_number == surah_number]

    def list_surahs(self) -> List[dict]:
        """
        List the surahs present in the corpus.

        Returns:
            List of dicts with number, name, ayahs_present, total_verses
        """
        return summarize_surahs(self.verses)


if __name__ == "__main__":
    search = VerseSearch()
    print(f"Loaded {len(search.verses)} verses")

    for r in search.search("What does the Quran say about patience?"):
        print(f"{r.verse.surah_name} {r.reference} - {r.verse.text[:50]}... (score: {r.score:.3f})")
