"""Level-ordered regex pattern detection.

Rules are grouped into five levels of increasing sophistication. Each level's
weight grows geometrically with PHI, and each occurrence is scored by its
length, its position relative to the golden sections of the text, and its
level.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Iterable

from data_designer_golden_text.golden import INV_PHI, PHI, fibonacci, round_half_up

MAX_LEVEL = 5

# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PatternOptions:
    """Depth, filtering and weighting knobs for :class:`PatternDetector`."""

    max_depth: int = MAX_LEVEL
    confidence_threshold: float = 0.1
    fractal_weight: float = PHI

    def __post_init__(self) -> None:
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {self.max_depth}")
        if self.confidence_threshold < 0:
            raise ValueError(f"confidence_threshold must be >= 0, got {self.confidence_threshold}")
        if self.fractal_weight <= 0:
            raise ValueError(f"fractal_weight must be > 0, got {self.fractal_weight}")


DEFAULT_PATTERN_OPTIONS = PatternOptions()

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PatternRule:
    """A labelled regex evaluated at a given level.

    ``pattern`` may be given as a string; it is compiled on construction and an
    invalid expression raises ``ValueError``.
    """

    level: int
    pattern: re.Pattern[str] | str
    weight: float
    description: str

    def __post_init__(self) -> None:
        if isinstance(self.pattern, str):
            try:
                compiled = re.compile(self.pattern)
            except re.error as exc:
                raise ValueError(f"invalid pattern for rule {self.description!r}: {exc}") from exc
            object.__setattr__(self, "pattern", compiled)
        if self.level < 1:
            raise ValueError(f"rule level must be >= 1, got {self.level}")


@dataclass(frozen=True)
class Occurrence:
    start: int
    end: int
    text: str
    confidence: float
    level: int

    def to_payload(self) -> dict[str, object]:
        return {
            "start": self.start,
            "end": self.end,
            "text": self.text,
            "confidence": self.confidence,
            "level": self.level,
        }


@dataclass(frozen=True)
class PatternMatch:
    pattern: str
    occurrences: tuple[Occurrence, ...]
    score: float
    frequency: int
    golden_ratio: float = 0.0

    def to_payload(self) -> dict[str, object]:
        return {
            "pattern": self.pattern,
            "occurrences": [o.to_payload() for o in self.occurrences],
            "score": self.score,
            "frequency": self.frequency,
            "golden_ratio": self.golden_ratio,
        }


@dataclass
class _RecurringGroup:
    label: str
    score: float
    occurrences: dict[int, Occurrence] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------

_WORD_RUN = r"[A-Z][a-z]*(?:\s+[A-Z][a-z]*)*"

PATTERN_RULES: tuple[PatternRule, ...] = (
    # level 1, weight PHI**0
    PatternRule(1, re.compile(r"\b[A-Z][a-z]+\b"), 1.0, "Capitalized words"),
    PatternRule(1, re.compile(r"\b\d{1,3}(?:,\d{3})*(?:\.\d+)?\b"), 0.8, "Formatted numbers"),
    PatternRule(1, re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"), 1.2, "Email"),
    # level 2, weight PHI**1
    PatternRule(2, re.compile(r"\b(?:https?://)?(?:www\.)?[a-zA-Z0-9-]+\.[a-zA-Z]{2,}(?:/[^\s]*)?\b"), PHI, "URL"),
    PatternRule(2, re.compile(r"\b[A-Z]{2,}\b"), PHI * 0.8, "Acronyms"),
    PatternRule(2, re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b"), PHI * 0.9, "Dates"),
    # level 3, weight PHI**2
    PatternRule(3, re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+){1,2}\b"), PHI**2, "Compound proper names"),
    PatternRule(3, re.compile(r"\b[\w.-]+@[\w.-]+\.\w+\b"), PHI**2 * 0.9, "Complex emails"),
    PatternRule(3, re.compile(r"\$\d{1,3}(?:,\d{3})*(?:\.\d{2})?\b"), PHI**2 * 0.7, "Currency amounts"),
    # level 4, weight PHI**3
    PatternRule(4, re.compile(r"\b(?:[A-Z][a-z]*){2,}\s*(?:\([^)]*\))?\b"), PHI**3, "Composite entities"),
    PatternRule(4, re.compile(r"\b\d{1,3}(?:\.\d{1,3}){3}\b"), PHI**3 * 0.8, "IP addresses"),
    # level 5, weight PHI**4
    PatternRule(5, re.compile(rf"\b(?:{_WORD_RUN})\s*:\s*(?:{_WORD_RUN})\b"), PHI**4, "Structured relations"),
)

_GOLDEN_POSITIONS = (0.382, 0.618, 0.786)
_POSITION_TOLERANCE = 0.1
_MIN_RECURSIVE_SEGMENT = 20
_MIN_FRACTAL_CHUNK = 3
_MIN_FRACTAL_TEXT = 5
_FRACTAL_FALLBACK = 0.5
_RECURRING_WORD_RE = re.compile(r"\b\w{3,}\b")

# ---------------------------------------------------------------------------
# Detector
# ---------------------------------------------------------------------------


class PatternDetector:
    """Find labelled regex patterns and self-similar term recurrence in text."""

    def __init__(self, options: PatternOptions | None = None) -> None:
        self.options = options or DEFAULT_PATTERN_OPTIONS

    def find_patterns(self, text: str | None, extra_rules: Iterable[PatternRule] = ()) -> list[PatternMatch]:
        """Run the rule table (plus ``extra_rules``) up to ``options.max_depth``.

        Groups scoring below ``options.confidence_threshold`` are dropped; the rest
        are returned highest score first.
        """
        if not text or not text.strip():
            return []

        rules = sorted(
            (r for r in (*PATTERN_RULES, *extra_rules) if r.level <= self.options.max_depth),
            key=lambda r: r.level,
        )
        total = len(text)
        results = []
        for rule in rules:
            occurrences = self._occurrences(text, rule)
            if not occurrences:
                continue
            results.append(
                PatternMatch(
                    pattern=rule.description,
                    occurrences=occurrences,
                    score=round_half_up(self._group_score(occurrences, rule, total)),
                    frequency=len(occurrences),
                    golden_ratio=round_half_up(_spacing_alignment(occurrences, total)),
                )
            )

        kept = [r for r in results if r.score >= self.options.confidence_threshold]
        kept.sort(key=lambda r: r.score, reverse=True)
        return kept

    def find_recursive_patterns(self, text: str | None, depth: int = 3) -> list[PatternMatch]:
        """Report terms that recur inside self-similar segments of the text.

        Segment length shrinks by PHI per level and consecutive segments overlap
        by ``1 - 1/PHI`` of their length. Occurrence offsets are absolute. Groups
        with the same label are merged across segments and levels.
        """
        if not text or not text.strip() or depth < 1:
            return []

        groups: dict[str, _RecurringGroup] = {}
        for level, start, chunk in _fractal_segments(text, min(depth, MAX_LEVEL)):
            for label, score, occurrences in _recurring_terms(chunk, start, level):
                group = groups.get(label)
                if group is None:
                    group = groups[label] = _RecurringGroup(label=label, score=score)
                else:
                    group.score = max(group.score, score)
                for occurrence in occurrences:
                    group.occurrences.setdefault(occurrence.start, occurrence)

        merged = [
            PatternMatch(
                pattern=group.label,
                occurrences=tuple(group.occurrences[k] for k in sorted(group.occurrences)),
                score=group.score,
                frequency=len(group.occurrences),
            )
            for group in groups.values()
        ]
        merged.sort(key=lambda m: m.score, reverse=True)
        return merged

    def calculate_fractal_dimension(self, text: str | None) -> float:
        """Estimate text complexity in ``[0.1, 2.0]`` from chunk uniqueness at PHI scales."""
        if not text or len(text) < _MIN_FRACTAL_TEXT:
            return _FRACTAL_FALLBACK

        length = len(text)
        levels = min(MAX_LEVEL, max(1, math.floor(math.log(length) / math.log(PHI))))
        complexity = 0.0
        valid_levels = 0
        for level in range(1, levels + 1):
            size = math.floor(length / PHI**level)
            if size < _MIN_FRACTAL_CHUNK:
                break
            chunks = [text[i : i + size] for i in range(0, length, size)]
            uniqueness = len(set(chunks)) / len(chunks)
            complexity += uniqueness * PHI ** (level - 1)
            valid_levels += 1

        if valid_levels == 0:
            return _FRACTAL_FALLBACK
        return round_half_up(min(2.0, max(0.1, complexity / valid_levels)))

    def _occurrences(self, text: str, rule: PatternRule) -> tuple[Occurrence, ...]:
        total = len(text)
        found = []
        # finditer always steps past an empty match, so empty-matching rules terminate.
        for m in rule.pattern.finditer(text):
            if m.end() == m.start():
                continue
            found.append(
                Occurrence(
                    start=m.start(),
                    end=m.end(),
                    text=m.group(0),
                    confidence=round_half_up(self._confidence(m.group(0), m.start(), total, rule.level)),
                    level=rule.level,
                )
            )
        return tuple(found)

    def _confidence(self, matched: str, position: int, total: int, level: int) -> float:
        length_factor = min(1.0, len(matched) / (PHI * 10))
        relative = position / total
        position_bonus = 0.0
        for golden in _GOLDEN_POSITIONS:
            distance = abs(relative - golden)
            if distance < _POSITION_TOLERANCE:
                position_bonus += (1 - distance) * 0.2
        level_bonus = fibonacci(level) / 100
        return min(1.0, (length_factor + position_bonus + level_bonus) * (self.options.fractal_weight / PHI))

    @staticmethod
    def _group_score(occurrences: tuple[Occurrence, ...], rule: PatternRule, total: int) -> float:
        coverage = sum(o.end - o.start for o in occurrences) / total
        average_confidence = sum(o.confidence for o in occurrences) / len(occurrences)
        saturation = min(1.0, len(occurrences) / (PHI * 5))
        return coverage * average_confidence * rule.weight * saturation


def _spacing_alignment(occurrences: tuple[Occurrence, ...], total: int) -> float:
    if len(occurrences) < 2:
        return 0.0
    positions = sorted(o.start / total for o in occurrences)
    score = 0.0
    for i in range(1, len(positions)):
        before = positions[i] - positions[i - 1]
        after = positions[i + 1] - positions[i] if i + 1 < len(positions) else 1 - positions[i]
        if after > 0:
            score += max(0.0, 1 - abs(before / after - PHI))
    return score / (len(positions) - 1)


def _fractal_segments(text: str, depth: int) -> list[tuple[int, int, str]]:
    segments = []
    for level in range(1, depth + 1):
        size = math.floor(len(text) / PHI ** (level - 1))
        if size < _MIN_RECURSIVE_SEGMENT:
            break
        step = math.floor(size * INV_PHI)
        for start in range(0, len(text) - size + 1, step):
            segments.append((level, start, text[start : start + size]))
    return segments


def _recurring_terms(chunk: str, offset: int, level: int) -> list[tuple[str, float, list[Occurrence]]]:
    words = _RECURRING_WORD_RE.findall(chunk.lower())
    counts: dict[str, int] = {}
    for word in words:
        counts[word] = counts.get(word, 0) + 1

    weight = fibonacci(level)
    found = []
    for word, count in counts.items():
        if count < 2:
            continue
        score = round_half_up((count / len(words)) * weight * PHI)
        confidence = min(1.0, score)
        occurrences = [
            Occurrence(start=offset + m.start(), end=offset + m.end(), text=word, confidence=confidence, level=level)
            for m in re.finditer(rf"\b{re.escape(word)}\b", chunk, re.IGNORECASE)
        ]
        found.append((f'Recurring "{word}"', score, occurrences))
    return found
