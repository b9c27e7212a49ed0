"""Run every analyzer over a text behind an optional shared cache.

Each analyzer's output is cached under ``<kind>:<content hash>:<effective
options>``. A hit returns exactly what a fresh computation would, so disabling
the cache changes latency and nothing else.
"""

from __future__ import annotations

import hashlib
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from pydantic import TypeAdapter

from data_designer_golden_text.cache import ScoringCache
from data_designer_golden_text.classifier import ClassificationResult, DocumentClassifier
from data_designer_golden_text.golden import PHI, mean, ratio_alignment, round_half_up
from data_designer_golden_text.keywords import Keyword, KeywordOptions, KeywordScorer
from data_designer_golden_text.patterns import PatternDetector, PatternMatch, PatternOptions
from data_designer_golden_text.segmenter import Section, segment

logger = logging.getLogger(__name__)

V = TypeVar("V")

_KEYWORD_CONFIDENCE_WEIGHT = 0.618
_PATTERN_ALIGNMENT_WEIGHT = 0.382
_HASH_CHARS = 16

_SECTIONS = TypeAdapter(tuple[Section, ...])
_KEYWORDS = TypeAdapter(tuple[Keyword, ...])
_PATTERNS = TypeAdapter(tuple[PatternMatch, ...])
_CLASSIFICATION = TypeAdapter(ClassificationResult)


@dataclass(frozen=True)
class PipelineOptions:
    """Limits and analyzer settings applied by :class:`Pipeline`."""

    max_sections: int = math.floor(PHI * 4)
    max_keywords: int = math.floor(PHI * 10)
    max_patterns: int = math.floor(PHI * 5)
    pattern_depth: int = 4
    keyword_min_length: int = 3
    confidence_threshold: float = 0.1
    preview_chars: int = 200

    def __post_init__(self) -> None:
        for name in ("max_sections", "max_keywords", "max_patterns", "preview_chars"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")


@dataclass(frozen=True)
class Summary:
    golden_ratio: float = 0.0
    complexity: float = 0.0
    confidence: float = 0.0
    processing_time_ms: float = 0.0

    def to_payload(self) -> dict[str, object]:
        return {
            "golden_ratio": self.golden_ratio,
            "complexity": self.complexity,
            "confidence": self.confidence,
            "processing_time_ms": self.processing_time_ms,
        }


@dataclass
class CacheReport:
    hits: int = 0
    misses: int = 0

    @property
    def efficiency(self) -> float:
        total = self.hits + self.misses
        return round_half_up(self.hits / total) if total else 0.0

    def to_payload(self) -> dict[str, object]:
        return {"hits": self.hits, "misses": self.misses, "efficiency": self.efficiency}


@dataclass(frozen=True)
class AnalysisResult:
    """Aggregated output of one :meth:`Pipeline.analyze` call.

    Fields left as ``None`` were not requested (see :meth:`Pipeline.analyze_partial`).
    """

    preview: str
    length: int
    sections: tuple[Section, ...] | None = None
    keywords: tuple[Keyword, ...] | None = None
    patterns: tuple[PatternMatch, ...] | None = None
    classification: ClassificationResult | None = None
    summary: Summary | None = None
    cache: CacheReport = field(default_factory=CacheReport)

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"input": {"preview": self.preview, "length": self.length}}
        if self.sections is not None:
            payload["sections"] = [s.to_payload() for s in self.sections]
        if self.keywords is not None:
            payload["keywords"] = [k.to_payload() for k in self.keywords]
        if self.patterns is not None:
            payload["patterns"] = [p.to_payload() for p in self.patterns]
        if self.classification is not None:
            payload["classification"] = self.classification.to_payload()
        if self.summary is not None:
            payload["summary"] = self.summary.to_payload()
        payload["cache"] = self.cache.to_payload()
        return payload


def content_hash(text: str) -> str:
    """Deterministic cache-key digest of ``text``; not an integrity check."""
    return hashlib.sha256(text.encode("utf-8", errors="surrogatepass")).hexdigest()[:_HASH_CHARS]


class Pipeline:
    """Segment, score keywords, detect patterns and classify a text.

    Args:
        options: Limits and analyzer settings.
        cache: Shared :class:`ScoringCache`. ``None`` disables caching.
    """

    def __init__(self, options: PipelineOptions | None = None, cache: ScoringCache[Any] | None = None) -> None:
        self.options = options or PipelineOptions()
        self.cache = cache
        self.keyword_scorer = KeywordScorer(
            KeywordOptions(min_word_length=self.options.keyword_min_length, max_keywords=self.options.max_keywords)
        )
        self.pattern_detector = PatternDetector(
            PatternOptions(max_depth=self.options.pattern_depth, confidence_threshold=self.options.confidence_threshold)
        )
        self.classifier = DocumentClassifier()

    def analyze(self, text: str | None) -> AnalysisResult:
        """Run every analyzer over ``text``."""
        return self.analyze_partial(text, sections=True, keywords=True, patterns=True, classification=True)

    def analyze_partial(
        self,
        text: str | None,
        *,
        sections: bool = False,
        keywords: bool = False,
        patterns: bool = False,
        classification: bool = False,
    ) -> AnalysisResult:
        """Run only the selected analyzers.

        A summary is attached whenever sections, keywords or patterns were requested.
        """
        started = time.perf_counter()
        text = text or ""
        digest = content_hash(text)
        report = CacheReport()

        found_sections = self._sections(text, digest, report) if sections else None
        found_keywords = self._keywords(text, digest, report) if keywords else None
        found_patterns = self._patterns(text, digest, report) if patterns else None
        found_classification = self._classification(text, digest, report) if classification else None

        summary = None
        if sections or keywords or patterns:
            summary = self._summary(found_sections or (), found_keywords or (), found_patterns or (), started)

        preview = text[: self.options.preview_chars]
        if len(text) > self.options.preview_chars:
            preview += "..."
        return AnalysisResult(
            preview=preview,
            length=len(text),
            sections=found_sections,
            keywords=found_keywords,
            patterns=found_patterns,
            classification=found_classification,
            summary=summary,
            cache=report,
        )

    def stats(self) -> dict[str, object]:
        return {
            "cache": self.cache.get_stats().to_payload() if self.cache is not None else None,
            "modules": {
                "segmenter": {"max_sections": self.options.max_sections},
                "keywords": {
                    "min_word_length": self.options.keyword_min_length,
                    "max_keywords": self.options.max_keywords,
                },
                "patterns": {
                    "max_depth": self.options.pattern_depth,
                    "confidence_threshold": self.options.confidence_threshold,
                    "max_patterns": self.options.max_patterns,
                },
            },
        }

    def persist_cache(self) -> bool:
        return self.cache.persist() if self.cache is not None else False

    def clear_cache(self) -> None:
        if self.cache is not None:
            self.cache.clear()

    # -- cached analyzers ---------------------------------------------------

    def _sections(self, text: str, digest: str, report: CacheReport) -> tuple[Section, ...]:
        key = f"sections:{digest}:{self.options.max_sections}"
        return self._fetch(key, _SECTIONS, lambda: tuple(segment(text, self.options.max_sections)), report)

    def _keywords(self, text: str, digest: str, report: CacheReport) -> tuple[Keyword, ...]:
        key = f"keywords:{digest}:{self.options.keyword_min_length}:{self.options.max_keywords}"
        return self._fetch(key, _KEYWORDS, lambda: tuple(self.keyword_scorer.extract(text)), report)

    def _patterns(self, text: str, digest: str, report: CacheReport) -> tuple[PatternMatch, ...]:
        key = (
            f"patterns:{digest}:{self.options.pattern_depth}:"
            f"{self.options.confidence_threshold}:{self.options.max_patterns}"
        )

        def compute() -> tuple[PatternMatch, ...]:
            return tuple(self.pattern_detector.find_patterns(text)[: self.options.max_patterns])

        return self._fetch(key, _PATTERNS, compute, report)

    def _classification(self, text: str, digest: str, report: CacheReport) -> ClassificationResult:
        return self._fetch(f"classification:{digest}", _CLASSIFICATION, lambda: self.classifier.classify(text), report)

    def _fetch(self, key: str, adapter: TypeAdapter[V], compute: Callable[[], V], report: CacheReport) -> V:
        if self.cache is None:
            return compute()

        cached = self.cache.get(key)
        if cached is not None:
            report.hits += 1
            logger.debug(f"cache hit for {key}")
            # Values restored from a snapshot arrive as plain JSON data.
            return adapter.validate_python(cached)

        value = compute()
        self.cache.set(key, value)
        report.misses += 1
        logger.debug(f"cache miss for {key}")
        return value

    @staticmethod
    def _summary(
        sections: tuple[Section, ...],
        keywords: tuple[Keyword, ...],
        patterns: tuple[PatternMatch, ...],
        started: float,
    ) -> Summary:
        scores = [k.score for k in keywords] + [p.score for p in patterns]
        complexity = min(1.0, mean(scores) * PHI) if scores else 0.0
        confidence = (
            mean(k.confidence for k in keywords) * _KEYWORD_CONFIDENCE_WEIGHT
            + mean(p.golden_ratio for p in patterns) * _PATTERN_ALIGNMENT_WEIGHT
        )
        return Summary(
            golden_ratio=round_half_up(ratio_alignment([s.ratio for s in sections])),
            complexity=round_half_up(complexity),
            confidence=round_half_up(confidence),
            processing_time_ms=round_half_up((time.perf_counter() - started) * 1000, 3),
        )
