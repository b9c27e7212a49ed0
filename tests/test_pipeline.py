import pytest

from data_designer_golden_text.cache import CacheOptions, ScoringCache
from data_designer_golden_text.pipeline import Pipeline, PipelineOptions, content_hash


ARTICLE = (
    "Golden Ratio Notes\n\n"
    "The golden ratio shows up in architecture, botany and typography. "
    "Designers at Studio Aurea use it to balance page layouts, and the golden ratio "
    "guides where their documents break.\n\n"
    "- Paragraph boundaries are the strongest cut points\n"
    "- Sentence ends come next\n\n"
    "Contact hello@aurea.studio or visit www.aurea.studio for the full report. "
    "The summary of findings was published on 12/03/2024."
)


def _analysis_parts(result):
    return result.sections, result.keywords, result.patterns, result.classification


class TestAnalyze:
    def test_full_analysis(self):
        result = Pipeline().analyze(ARTICLE)
        assert result.length == len(ARTICLE)
        assert result.sections
        assert result.keywords
        assert result.patterns is not None
        assert result.classification is not None
        assert result.summary is not None
        assert 0 <= result.summary.golden_ratio <= 1
        assert 0 <= result.summary.complexity <= 1
        assert 0 <= result.summary.confidence <= 1
        assert result.summary.processing_time_ms >= 0

    def test_options_limit_outputs(self):
        options = PipelineOptions(max_sections=2, max_keywords=3, max_patterns=1)
        result = Pipeline(options).analyze(ARTICLE)
        assert len(result.sections) <= 2
        assert len(result.keywords) <= 3
        assert len(result.patterns) <= 1

    def test_empty_input(self):
        result = Pipeline().analyze("")
        assert result.sections == ()
        assert result.keywords == ()
        assert result.patterns == ()
        assert result.classification.type == "letter"
        assert result.summary.golden_ratio == 0.0
        assert result.summary.complexity == 0.0
        assert result.summary.confidence == 0.0

    def test_preview_is_truncated(self):
        result = Pipeline(PipelineOptions(preview_chars=10)).analyze(ARTICLE)
        assert result.preview == ARTICLE[:10] + "..."
        assert Pipeline().analyze("short").preview == "short"

    def test_partial_analysis(self):
        result = Pipeline().analyze_partial(ARTICLE, keywords=True)
        assert result.sections is None
        assert result.patterns is None
        assert result.classification is None
        assert result.keywords
        assert result.summary is not None

    def test_partial_without_core_analyzers_has_no_summary(self):
        result = Pipeline().analyze_partial(ARTICLE, classification=True)
        assert result.summary is None
        assert result.classification is not None

    def test_payload_omits_unrequested_parts(self):
        payload = Pipeline().analyze_partial(ARTICLE, sections=True).to_payload()
        assert "sections" in payload
        assert "keywords" not in payload
        assert payload["input"]["length"] == len(ARTICLE)
        assert payload["cache"] == {"hits": 0, "misses": 0, "efficiency": 0.0}


class TestCaching:
    def test_second_call_hits_cache(self):
        pipeline = Pipeline(cache=ScoringCache())
        first = pipeline.analyze(ARTICLE)
        second = pipeline.analyze(ARTICLE)
        assert (first.cache.hits, first.cache.misses) == (0, 4)
        assert (second.cache.hits, second.cache.misses) == (4, 0)
        assert second.cache.efficiency == 1.0
        assert _analysis_parts(first) == _analysis_parts(second)

    def test_cache_does_not_change_results(self):
        cached = Pipeline(cache=ScoringCache()).analyze(ARTICLE)
        uncached = Pipeline().analyze(ARTICLE)
        assert _analysis_parts(cached) == _analysis_parts(uncached)
        assert cached.summary.golden_ratio == uncached.summary.golden_ratio
        assert cached.summary.confidence == uncached.summary.confidence

    def test_options_are_part_of_the_key(self):
        cache = ScoringCache()
        Pipeline(PipelineOptions(max_keywords=10), cache=cache).analyze_partial(ARTICLE, keywords=True)
        result = Pipeline(PipelineOptions(max_keywords=3), cache=cache).analyze_partial(ARTICLE, keywords=True)
        assert result.cache.misses == 1
        assert len(result.keywords) <= 3

    def test_persisted_results_are_rebuilt(self, tmp_path):
        path = str(tmp_path / "pipeline-cache.json")
        pipeline = Pipeline(cache=ScoringCache(CacheOptions(persist_path=path)))
        fresh = pipeline.analyze(ARTICLE)
        assert pipeline.persist_cache()

        restored = Pipeline(cache=ScoringCache(CacheOptions(persist_path=path))).analyze(ARTICLE)
        assert restored.cache.hits == 4
        assert _analysis_parts(restored) == _analysis_parts(fresh)

    def test_stats_and_clear(self):
        pipeline = Pipeline(cache=ScoringCache())
        pipeline.analyze(ARTICLE)
        stats = pipeline.stats()
        assert stats["cache"]["total_entries"] == 4
        assert stats["modules"]["keywords"]["max_keywords"] == PipelineOptions().max_keywords

        pipeline.clear_cache()
        assert pipeline.stats()["cache"]["total_entries"] == 0
        assert pipeline.analyze(ARTICLE).cache.misses == 4

    def test_without_cache(self):
        pipeline = Pipeline()
        assert pipeline.stats()["cache"] is None
        assert pipeline.persist_cache() is False
        pipeline.clear_cache()


class TestContentHash:
    def test_deterministic_and_distinct(self):
        assert content_hash(ARTICLE) == content_hash(ARTICLE)
        assert content_hash("a") != content_hash("b")
        assert len(content_hash("")) == 16


class TestOptions:
    def test_defaults(self):
        options = PipelineOptions()
        assert (options.max_sections, options.max_keywords, options.max_patterns) == (6, 16, 8)

    def test_invalid(self):
        with pytest.raises(ValueError):
            PipelineOptions(max_keywords=-1)
