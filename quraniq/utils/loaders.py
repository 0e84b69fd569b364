from __future__ import annotations

import json
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Sequence

from .types import Verse


DEFAULT_CORPUS_PATH = Path(__file__).resolve().parent.parent / "data" / "verses.json"


def verse_from_dict(v: dict) -> Verse:
    """Build a Verse from one corpus record, validating its reference."""
    surah_number = int(v["surah_number"])
    ayah_number = int(v["ayah_number"])
    if not 1 <= surah_number <= 114:
        raise ValueError(f"surah_number out of range: {surah_number}")
    if ayah_number < 1:
        raise ValueError(f"ayah_number must be >= 1: {ayah_number}")
    return Verse(
        surah_name=v["surah_name"],
        surah_number=surah_number,
        ayah_number=ayah_number,
        text=v["text"],
        topics=tuple(t.lower() for t in v.get("topics") or []),
    )


def sort_verses(verses: Iterable[Verse]) -> List[Verse]:
    """Order verses by (surah, ayah) and drop duplicate references."""
    seen = set()
    ordered: List[Verse] = []
    for v in sorted(verses, key=lambda x: x.key):
        if v.key in seen:
            continue
        seen.add(v.key)
        ordered.append(v)
    return ordered


def load_verses(path: str | Path | None = None) -> List[Verse]:
    """Load a flat list of verses (verses.json)."""
    p = Path(path) if path else DEFAULT_CORPUS_PATH
    raw = json.loads(p.read_text(encoding="utf-8"))
    return sort_verses(verse_from_dict(v) for v in raw)


def summarize_surahs(verses: Sequence[Verse]) -> List[dict]:
    """Per-surah coverage of the loaded corpus."""
    by_surah: Dict[int, List[Verse]] = defaultdict(list)
    for v in verses:
        by_surah[v.surah_number].append(v)

    summary = []
    for number in sorted(by_surah):
        lst = by_surah[number]
        summary.append({
            "number": number,
            "name": lst[0].surah_name,
            "ayahs_present": [v.ayah_number for v in lst],
            "total_verses": len(lst),
        })
    return summary


def save_verses(verses: Sequence[Verse], path: str | Path) -> None:
    p = Path(path)
    data = []
    for v in verses:
        data.append(
            {
                "surah_name": v.surah_name,
                "surah_number": v.surah_number,
                "ayah_number": v.ayah_number,
                "text": v.text,
                "topics": list(v.topics),
            }
        )
    p.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
