import pytest

from data_designer_golden_text.patterns import PATTERN_RULES, PatternDetector, PatternOptions, PatternRule


CONTACT_TEXT = (
    "Contact John Smith at john.smith@example.com or visit www.example.com for details. "
    "The NASA and ESA teams met on 12/03/2024 to review the $1,250.00 budget. "
    "Server 192.168.1.10 hosts the Project Atlas dashboard."
)

RECURRING_TEXT = "data quality matters. data lineage matters. data owners review data daily."


def _by_label(matches):
    return {m.pattern: m for m in matches}


class TestFindPatterns:
    def test_detects_core_entities(self):
        detector = PatternDetector(PatternOptions(confidence_threshold=0))
        found = _by_label(detector.find_patterns(CONTACT_TEXT))
        assert [o.text for o in found["Email"].occurrences] == ["john.smith@example.com"]
        assert "NASA" in [o.text for o in found["Acronyms"].occurrences]
        assert [o.text for o in found["Dates"].occurrences] == ["12/03/2024"]
        assert [o.text for o in found["IP addresses"].occurrences] == ["192.168.1.10"]
        assert [o.text for o in found["Currency amounts"].occurrences] == ["$1,250.00"]

    def test_sorted_by_score_and_thresholded(self):
        matches = PatternDetector().find_patterns(CONTACT_TEXT)
        scores = [m.score for m in matches]
        assert scores == sorted(scores, reverse=True)
        assert all(score >= 0.1 for score in scores)

    def test_frequency_matches_occurrences(self):
        detector = PatternDetector(PatternOptions(confidence_threshold=0))
        for match in detector.find_patterns(CONTACT_TEXT):
            assert match.frequency == len(match.occurrences)
            assert 0 <= match.golden_ratio <= 1
            for occurrence in match.occurrences:
                assert CONTACT_TEXT[occurrence.start : occurrence.end] == occurrence.text
                assert 0 <= occurrence.confidence <= 1

    def test_max_depth_limits_levels(self):
        detector = PatternDetector(PatternOptions(max_depth=1, confidence_threshold=0))
        matches = detector.find_patterns(CONTACT_TEXT)
        assert matches
        for match in matches:
            assert all(o.level == 1 for o in match.occurrences)

    def test_empty_input(self):
        detector = PatternDetector()
        assert detector.find_patterns("") == []
        assert detector.find_patterns("   ") == []
        assert detector.find_patterns(None) == []

    def test_rule_table_covers_five_levels(self):
        assert {rule.level for rule in PATTERN_RULES} == {1, 2, 3, 4, 5}
        assert len(PATTERN_RULES) == 12


class TestCustomRules:
    def test_empty_matches_are_skipped(self):
        detector = PatternDetector(PatternOptions(confidence_threshold=0))
        rule = PatternRule(1, r"a*", 1.0, "A runs")
        found = _by_label(detector.find_patterns("aaa bbb aaa", extra_rules=[rule]))
        assert found["A runs"].frequency == 2
        assert [o.start for o in found["A runs"].occurrences] == [0, 8]

    def test_rule_matching_only_empty_strings_terminates(self):
        detector = PatternDetector(PatternOptions(confidence_threshold=0))
        rule = PatternRule(1, r"x*", 1.0, "Nothing")
        assert "Nothing" not in _by_label(detector.find_patterns("abc", extra_rules=[rule]))

    def test_rule_above_max_depth_is_ignored(self):
        detector = PatternDetector(PatternOptions(max_depth=2, confidence_threshold=0))
        rule = PatternRule(3, r"data", 1.0, "Deep")
        assert "Deep" not in _by_label(detector.find_patterns(RECURRING_TEXT, extra_rules=[rule]))

    def test_invalid_rules(self):
        with pytest.raises(ValueError):
            PatternRule(1, "(", 1.0, "broken")
        with pytest.raises(ValueError):
            PatternRule(0, r"\w+", 1.0, "no level")

    def test_invalid_options(self):
        with pytest.raises(ValueError):
            PatternOptions(max_depth=0)
        with pytest.raises(ValueError):
            PatternOptions(confidence_threshold=-1)


class TestRecursivePatterns:
    def test_recurring_terms_have_absolute_offsets(self):
        matches = _by_label(PatternDetector().find_recursive_patterns(RECURRING_TEXT, 3))
        data = matches['Recurring "data"']
        assert data.frequency == 4
        starts = [o.start for o in data.occurrences]
        assert starts == sorted(set(starts))
        for occurrence in data.occurrences:
            assert RECURRING_TEXT[occurrence.start : occurrence.end].lower() == "data"
        assert 'Recurring "matters"' in matches

    def test_sorted_by_score(self):
        scores = [m.score for m in PatternDetector().find_recursive_patterns(RECURRING_TEXT, 3)]
        assert scores == sorted(scores, reverse=True)

    def test_short_or_empty_text(self):
        detector = PatternDetector()
        assert detector.find_recursive_patterns("", 3) == []
        assert detector.find_recursive_patterns("tiny tiny", 3) == []
        assert detector.find_recursive_patterns(RECURRING_TEXT, 0) == []


class TestFractalDimension:
    def test_short_text_fallback(self):
        detector = PatternDetector()
        assert detector.calculate_fractal_dimension("") == 0.5
        assert detector.calculate_fractal_dimension("abcd") == 0.5

    def test_bounded(self):
        detector = PatternDetector()
        for text in (CONTACT_TEXT, RECURRING_TEXT, "ab" * 80, "x" * 200):
            assert 0.1 <= detector.calculate_fractal_dimension(text) <= 2.0

    def test_deterministic(self):
        detector = PatternDetector()
        assert detector.calculate_fractal_dimension(CONTACT_TEXT) == detector.calculate_fractal_dimension(CONTACT_TEXT)
