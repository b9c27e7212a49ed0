from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from data_designer.engine.column_generators.generators.base import ColumnGeneratorFullColumn

from data_designer_golden_text.cache import ScoringCache
from data_designer_golden_text.config import GoldenTextColumnConfig
from data_designer_golden_text.pipeline import Pipeline, PipelineOptions

if TYPE_CHECKING:
    import pandas as pd

logger = logging.getLogger(__name__)


def build_pipeline(config: GoldenTextColumnConfig, cache: ScoringCache | None = None) -> Pipeline:
    options = PipelineOptions(
        max_sections=config.max_sections,
        max_keywords=config.max_keywords,
        pattern_depth=config.pattern_depth,
    )
    return Pipeline(options, cache=cache)


def analyze_row(text: str, config: GoldenTextColumnConfig, pipeline: Pipeline) -> dict:
    analysis = pipeline.analyze_partial(
        text,
        sections=True,
        keywords=True,
        patterns=True,
        classification=config.include_classification,
    )
    output: dict = {
        "length": analysis.length,
        "keywords": [k.term for k in analysis.keywords],
        "section_count": len(analysis.sections),
        "golden_ratio": analysis.summary.golden_ratio,
        "complexity": analysis.summary.complexity,
        "confidence": analysis.summary.confidence,
    }
    if config.include_sections:
        output["sections"] = [s.to_payload() for s in analysis.sections]
    if config.include_patterns:
        output["patterns"] = [
            {"pattern": p.pattern, "score": p.score, "frequency": p.frequency} for p in analysis.patterns
        ]
    if analysis.classification is not None:
        output["document_type"] = analysis.classification.type
        output["document_confidence"] = analysis.classification.confidence
    return output


class GoldenTextColumnGenerator(ColumnGeneratorFullColumn[GoldenTextColumnConfig]):
    """Column generator that runs the golden-ratio text pipeline on each row."""

    def generate(self, data: pd.DataFrame) -> pd.DataFrame:
        logger.info(f"\U0001f41a Analyzing column {self.config.name!r} with the golden text pipeline")
        logger.info(f"   target columns: {self.config.target_columns}")
        logger.info(f"   max_keywords: {self.config.max_keywords}, pattern_depth: {self.config.pattern_depth}")

        # Rows with identical text are only analyzed once per column.
        pipeline = build_pipeline(self.config, cache=ScoringCache())
        results = []
        for _, row in data[self.config.target_columns].iterrows():
            text = " ".join(str(v) for v in row.values if v is not None)
            results.append(analyze_row(text, self.config, pipeline))

        data = data.copy()
        data[self.config.name] = results
        return data
