# SPDX-License-Identifier: Apache-2.0
"""Golden-ratio text analysis, with a plugin for NeMo Data Designer.

Segments text at golden-ratio cut points, scores keywords with a
self-referential TF-IDF, detects level-ordered regex patterns, classifies the
document type, and caches every result in a score-evicting cache. No models,
no network calls.

Usage::

    from data_designer_golden_text import Pipeline, ScoringCache

    pipeline = Pipeline(cache=ScoringCache())
    result = pipeline.analyze(text)
    result.keywords[0].term, result.classification.type

As a Data Designer column::

    from data_designer_golden_text.config import GoldenTextColumnConfig

    builder.add_column(GoldenTextColumnConfig(
        name="analysis",
        target_columns=["article"],
    ))
"""

from data_designer_golden_text.cache import CacheOptions, CacheStats, ScoringCache
from data_designer_golden_text.classifier import ClassificationResult, DocumentClassifier, Feature
from data_designer_golden_text.golden import PHI
from data_designer_golden_text.keywords import Keyword, KeywordOptions, KeywordScorer
from data_designer_golden_text.patterns import Occurrence, PatternDetector, PatternMatch, PatternOptions, PatternRule
from data_designer_golden_text.pipeline import AnalysisResult, Pipeline, PipelineOptions
from data_designer_golden_text.segmenter import Section, segment

__all__ = [
    "PHI",
    "AnalysisResult",
    "CacheOptions",
    "CacheStats",
    "ClassificationResult",
    "DocumentClassifier",
    "Feature",
    "Keyword",
    "KeywordOptions",
    "KeywordScorer",
    "Occurrence",
    "PatternDetector",
    "PatternMatch",
    "PatternOptions",
    "PatternRule",
    "Pipeline",
    "PipelineOptions",
    "ScoringCache",
    "Section",
    "segment",
]
