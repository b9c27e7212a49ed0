"""Split text into ordered sections at golden-ratio cut points.

Cut targets sit at fixed fractions of the text length. Each target snaps to the
nearest candidate boundary (paragraph break, list item, sentence end, weak
punctuation) within a search radius, preferring stronger boundaries.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from data_designer_golden_text.golden import INV_PHI, PHI, round_half_up

CUT_RATIOS: tuple[float, ...] = (0.382, 0.618, 0.786, 0.854, 0.91, 0.944)
DEFAULT_MAX_SECTIONS = len(CUT_RATIOS) + 1

_END_OF_TEXT_WEIGHT = 0.2
_MIN_SEARCH_RADIUS = 40

_BOUNDARY_RULES: tuple[tuple[re.Pattern[str], float], ...] = (
    (re.compile(r"\n{2,}"), 1.0),
    (re.compile(r"\n[-*•]\s+"), 0.9),
    (re.compile(r"[.?!]\s+(?=[A-ZÀ-ÖØ-Ý0-9])"), 0.75),
    (re.compile(r"[,;:]\s+"), 0.5),
)


@dataclass(frozen=True)
class Section:
    start: int
    end: int
    ratio: float
    importance: float
    content: str

    def to_payload(self) -> dict[str, object]:
        return {
            "start": self.start,
            "end": self.end,
            "ratio": self.ratio,
            "importance": self.importance,
            "content": self.content,
        }


@dataclass(frozen=True)
class _Boundary:
    index: int
    weight: float


def _boundaries(text: str) -> list[_Boundary]:
    found = [
        _Boundary(m.end(), weight)
        for pattern, weight in _BOUNDARY_RULES
        for m in pattern.finditer(text)
    ]
    found.append(_Boundary(len(text), _END_OF_TEXT_WEIGHT))
    return sorted(found, key=lambda b: b.index)


def _pick_break(boundaries: list[_Boundary], target: int, total: int) -> int:
    radius = max(_MIN_SEARCH_RADIUS, math.floor(total / (PHI * 10)))
    best, best_score = target, math.inf
    for boundary in boundaries:
        distance = abs(boundary.index - target)
        if distance > radius or boundary.index <= 0:
            continue
        score = distance / boundary.weight
        if score < best_score:
            best, best_score = boundary.index, score
    return min(max(best, 1), total)


def segment(text: str | None, max_sections: int = DEFAULT_MAX_SECTIONS) -> list[Section]:
    """Split ``text`` into at most ``max_sections`` sections.

    Sections are contiguous, the last one always closes at end-of-text, and
    whitespace-only sections are dropped. Importance is ``(1/PHI)**i`` for the
    i-th returned section, so it strictly decreases along the list.
    """
    raw = text or ""
    total = len(raw)
    if not total or max_sections < 1:
        return []

    boundaries = _boundaries(raw)
    sections: list[Section] = []

    def _push(start: int, end: int) -> None:
        content = raw[start:end].strip()
        if not content:
            return
        sections.append(
            Section(
                start=start,
                end=end,
                ratio=round_half_up(end / total),
                importance=round_half_up(INV_PHI ** len(sections)),
                content=content,
            )
        )

    start = 0
    for ratio in CUT_RATIOS[: max_sections - 1]:
        if start >= total:
            break
        target = math.floor(total * ratio)
        end = min(total, max(start + 1, _pick_break(boundaries, target, total)))
        _push(start, end)
        start = end
    if start < total:
        _push(start, total)

    return sections
