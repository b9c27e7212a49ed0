from __future__ import annotations

from typing import Literal

from pydantic import Field

from data_designer.config.column_configs import SingleColumnConfig


class GoldenTextColumnConfig(SingleColumnConfig):
    """Analyze text columns with the golden-ratio text pipeline.

    Segments each row's text, extracts weighted keywords, detects patterns and
    classifies the document type. The column value is one dict per row.

    Attributes:
        target_columns: Columns whose text content will be concatenated and analyzed.
        max_sections: Upper bound on the number of sections per row.
        max_keywords: Upper bound on the number of keywords per row.
        pattern_depth: Highest pattern level (1-5) evaluated.
        include_sections: Include the section list in the output.
        include_patterns: Include the pattern groups in the output.
        include_classification: Include the predicted document type and confidence.
    """

    target_columns: list[str]
    max_sections: int = Field(default=6, ge=1, le=7, description="Maximum number of sections per row")
    max_keywords: int = Field(default=16, ge=0, le=100, description="Maximum number of keywords per row")
    pattern_depth: int = Field(default=4, ge=1, le=5, description="Highest pattern level evaluated")
    include_sections: bool = Field(default=False, description="Include the section list in output")
    include_patterns: bool = Field(default=True, description="Include pattern groups in output")
    include_classification: bool = Field(default=True, description="Include document type and confidence")
    column_type: Literal["golden-text"] = "golden-text"

    @staticmethod
    def get_column_emoji() -> str:
        return "\U0001f41a"

    @property
    def required_columns(self) -> list[str]:
        return self.target_columns

    @property
    def side_effect_columns(self) -> list[str]:
        return []
