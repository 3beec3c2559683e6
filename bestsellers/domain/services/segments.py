"""
Audience segments: canonical segment sets and the tag/productType classifier.

The classifier is data-driven (see SEGMENT_KEYWORDS) plus two policy rules:
  - an explicit `gender:<value>` tag is authoritative and overrides keywords;
  - man/woman are mutually exclusive when only one of them is requested,
    while teens/kids (and any other segment) are OR-ed in on top.
"""
from __future__ import annotations
import re
import unicodedata
from dataclasses import dataclass
from itertools import combinations
from typing import Iterable, Optional, Sequence

from bestsellers.domain.services.constants import (
    ALL_LABEL,
    EXCLUSIVE_SEGMENTS,
    GENDER_TAG_PREFIX,
    SEGMENT_ALIASES,
    SEGMENT_KEYWORDS,
    SEGMENTS,
)

_SPLIT = re.compile(r"[^a-z0-9:]+")


def normalize(s: str) -> str:
    """Lower-case, strip diacritics, trim."""
    decomposed = unicodedata.normalize("NFD", (s or "").lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).strip()


def tokenize(s: str) -> list[str]:
    return [t for t in _SPLIT.split(normalize(s)) if t]


def token_set(values: str | Iterable[str] | None) -> set[str]:
    if values is None:
        return set()
    if isinstance(values, str):
        values = [values]
    out: set[str] = set()
    for v in values:
        out.update(tokenize(v))
    return out


# Needles normalised once so "niño" and "nino" hit the same token
_KEYWORDS = {seg: frozenset(normalize(n) for n in needles) for seg, needles in SEGMENT_KEYWORDS.items()}


@dataclass(frozen=True)
class SegmentSet:
    """Canonical (lower-cased, de-duplicated, sorted) set of segments. Empty = no filter."""
    members: tuple[str, ...] = ()

    @classmethod
    def of(cls, values: Iterable[str] = ()) -> "SegmentSet":
        return cls(tuple(sorted({v.strip().lower() for v in values if v and v.strip()})))

    def __bool__(self) -> bool:
        return bool(self.members)

    def __contains__(self, seg: object) -> bool:
        return seg in self.members

    def __iter__(self):
        return iter(self.members)

    def __len__(self) -> int:
        return len(self.members)

    @property
    def key(self) -> str:
        """Cache-key component: sorted members joined by ','; empty set is ''."""
        return ",".join(self.members)

    @property
    def label(self) -> str:
        """Human-readable label used in snapshot summaries."""
        return "+".join(self.members) or ALL_LABEL


def parse_segments(segments: Optional[str] = None, segment: Optional[str] = None) -> SegmentSet:
    """
    Parse request tokens. `segments` (comma list) wins over a single `segment`;
    `segment=all` means no filter. Synonyms are folded, unknown tokens ignored.
    """
    multi = (segments or "").lower()
    single = (segment or "").lower().strip()
    if multi:
        raw = [s.strip() for s in multi.split(",") if s.strip()]
    elif single and single != ALL_LABEL:
        raw = [single]
    else:
        raw = []
    return SegmentSet.of(SEGMENT_ALIASES[v] for v in raw if v in SEGMENT_ALIASES)


def explicit_gender(tags: Sequence[str] | None) -> Optional[str]:
    """Value of the first `gender:<value>` tag, folded through the aliases, or None."""
    for t in tags or ():
        t = t.lower().strip()
        if t.startswith(GENDER_TAG_PREFIX):
            value = t[len(GENDER_TAG_PREFIX):].strip()
            return SEGMENT_ALIASES.get(value, value)
    return None


def keyword_matches(tags: Sequence[str] | None, product_type: str | None) -> set[str]:
    """Segments whose keyword list hits any tag or productType token."""
    tokens = token_set(tags) | token_set(product_type or "")
    return {seg for seg, needles in _KEYWORDS.items() if tokens & needles}


def matches(tags: Sequence[str] | None, product_type: str | None, segments: SegmentSet) -> bool:
    """True when the product belongs to the requested segment set."""
    if not segments:
        return True

    gender = explicit_gender(tags)
    if gender is not None:
        return gender in segments

    hits = keyword_matches(tags, product_type)
    man, woman = EXCLUSIVE_SEGMENTS
    wants_man, wants_woman = man in segments, woman in segments

    ok = False
    if wants_man and not wants_woman:
        ok = man in hits and woman not in hits
    elif wants_woman and not wants_man:
        ok = woman in hits and man not in hits
    elif wants_man and wants_woman:
        ok = man in hits or woman in hits

    if not ok:
        ok = any(seg in hits for seg in segments if seg not in EXCLUSIVE_SEGMENTS)
    return ok


def all_segment_sets(vocabulary: Sequence[str] = SEGMENTS) -> list[SegmentSet]:
    """Power set of the vocabulary, empty set ("all") first."""
    out: list[SegmentSet] = []
    for size in range(len(vocabulary) + 1):
        for combo in combinations(vocabulary, size):
            out.append(SegmentSet.of(combo))
    return out
