import pytest

from data_designer_golden_text.config import GoldenTextColumnConfig
from data_designer_golden_text.generator import analyze_row, build_pipeline


ARTICLE = (
    "INVOICE #2945\nBill To: PT Example Studio\nDue Date: 31 October 2024\n\n"
    "Description           Qty   Unit Price   Amount\n"
    "Brand identity kit     1    $1,500.00    $1,500.00\n\n"
    "Subtotal: $1,500.00\nTax (11%): $165.00\nTotal Amount Due: $1,665.00"
)


def _config(**overrides):
    return GoldenTextColumnConfig(name="analysis", target_columns=["body"], **overrides)


class TestConfig:
    def test_defaults(self):
        config = _config()
        assert config.column_type == "golden-text"
        assert config.max_sections == 6
        assert config.max_keywords == 16
        assert config.pattern_depth == 4
        assert config.required_columns == ["body"]
        assert config.side_effect_columns == []

    def test_bounds(self):
        with pytest.raises(ValueError):
            _config(pattern_depth=6)
        with pytest.raises(ValueError):
            _config(max_sections=0)


class TestAnalyzeRow:
    def test_default_output(self):
        config = _config()
        row = analyze_row(ARTICLE, config, build_pipeline(config))
        assert row["length"] == len(ARTICLE)
        assert len(row["keywords"]) <= 16
        assert all(isinstance(term, str) for term in row["keywords"])
        assert row["section_count"] >= 1
        assert "sections" not in row
        assert isinstance(row["patterns"], list)
        assert row["document_type"] == "invoice"
        assert 0 < row["document_confidence"] <= 0.99

    def test_optional_fields(self):
        config = _config(include_sections=True, include_patterns=False, include_classification=False)
        row = analyze_row(ARTICLE, config, build_pipeline(config))
        assert row["sections"]
        assert "patterns" not in row
        assert "document_type" not in row

    def test_empty_row(self):
        config = _config()
        row = analyze_row("", config, build_pipeline(config))
        assert row["keywords"] == []
        assert row["section_count"] == 0
        assert row["golden_ratio"] == 0.0
