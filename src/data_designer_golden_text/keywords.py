"""Keyword extraction with a self-referential TF-IDF.

There is no external corpus. The inverse document frequency is simulated from
in-document statistics only (term length against the mean term length, and how
many candidate terms share the term's first word), and the final score is
shaped by Fibonacci length weights and a boost for frequencies that land near
golden-ratio fractions of the token count.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from data_designer_golden_text.golden import INV_PHI, PHI, fibonacci, round_half_up

# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeywordOptions:
    """Tokenizer and output limits for :class:`KeywordScorer`."""

    min_word_length: int = 3
    max_keywords: int = 20

    def __post_init__(self) -> None:
        if self.min_word_length < 1:
            raise ValueError(f"min_word_length must be >= 1, got {self.min_word_length}")
        if self.max_keywords < 0:
            raise ValueError(f"max_keywords must be >= 0, got {self.max_keywords}")


DEFAULT_KEYWORD_OPTIONS = KeywordOptions()


@dataclass(frozen=True)
class Keyword:
    term: str
    frequency: int
    idf: float
    score: float
    confidence: float

    def to_payload(self) -> dict[str, object]:
        return {
            "term": self.term,
            "frequency": self.frequency,
            "idf": self.idf,
            "score": self.score,
            "confidence": self.confidence,
        }


# ---------------------------------------------------------------------------
# Stop terms (Italian + English)
# ---------------------------------------------------------------------------

_STOP_TERMS_IT = (
    "il la le lo gli un una uno di da del della dei delle "
    "con per su tra fra in a ad al alla allo ai alle agli "
    "che chi cui come quando dove mentre se ma però quindi così "
    "anche ancora sempre mai già più molto poco tanto tutto tutti "
    "essere avere fare dire andare venire volere potere dovere sapere "
    "sono sei è siamo siete ho hai ha abbiamo avete hanno "
    "faccio fai fa facciamo fate fanno dico dici dice diciamo dite dicono "
    "questo questa questi queste quello quella quelli quelle altro altri altre"
)
_STOP_TERMS_EN = (
    "the a an and or but in on at to for of with by "
    "from about into through during before after above below up down "
    "out off over under again further then once here there when "
    "where why how all any both each few more most other some "
    "such no nor not only own same so than too very can will "
    "just should now i you he she it we they them their what "
    "which who whom this that these those am is are was were "
    "be been being have has had having do does did doing would "
    "could should may might must shall get got getting give gave "
    "given giving go goes going went gone make makes made making"
)
STOP_TERMS: frozenset[str] = frozenset(_STOP_TERMS_IT.split()) | frozenset(_STOP_TERMS_EN.split())

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_NUMERAL_RE = re.compile(r"^\d+$")

_BIGRAM_MIN_WORD_LENGTH = 3

# ~0.618, ~0.382, ~0.162, ~0.309
_GOLDEN_FREQUENCIES = (INV_PHI, 1 / (PHI * PHI), PHI / 10, INV_PHI / 2)
_GOLDEN_TOLERANCE = 0.1
_OVER_FREQUENT = 0.3
_UNDER_FREQUENT = 0.01


class KeywordScorer:
    """Score single and two-word terms of a document."""

    def __init__(self, options: KeywordOptions | None = None) -> None:
        self.options = options or DEFAULT_KEYWORD_OPTIONS

    def extract(self, text: str | None, max_keywords: int | None = None) -> list[Keyword]:
        """Return up to ``max_keywords`` keywords, highest score first.

        Args:
            text: The document to analyze. Empty or whitespace-only input yields ``[]``.
            max_keywords: Overrides ``options.max_keywords`` for this call.
        """
        limit = self.options.max_keywords if max_keywords is None else max_keywords
        if not text or not text.strip():
            return []

        tokens = self._tokenize(text)
        if not tokens:
            return []

        frequencies = self._term_frequencies(tokens)
        terms = [term for term in frequencies if self._is_valid_term(term)]
        if not terms:
            return []

        total = len(tokens)
        idf_scores = self._simulated_idf(terms, total)

        results = []
        for term in terms:
            frequency = frequencies[term]
            idf = idf_scores[term]
            tf_idf = (frequency / total) * idf
            score = tf_idf * self._length_weight(term) * self._golden_boost(frequency, total)
            results.append(
                Keyword(
                    term=term,
                    frequency=frequency,
                    idf=round_half_up(idf),
                    score=round_half_up(score),
                    confidence=round_half_up(self._confidence(frequency, total, len(term))),
                )
            )

        results.sort(key=lambda k: k.score, reverse=True)
        return results[:limit]

    def _tokenize(self, text: str) -> list[str]:
        cleaned = _PUNCTUATION_RE.sub(" ", text.lower())
        return [
            token for token in cleaned.split()
            if len(token) >= self.options.min_word_length and not _NUMERAL_RE.match(token)
        ]

    def _term_frequencies(self, tokens: list[str]) -> dict[str, int]:
        counts: dict[str, int] = {}
        for token in tokens:
            counts[token] = counts.get(token, 0) + 1
        for first, second in zip(tokens, tokens[1:]):
            if _is_significant_bigram(first, second):
                bigram = f"{first} {second}"
                counts[bigram] = counts.get(bigram, 0) + 1
        return counts

    def _is_valid_term(self, term: str) -> bool:
        if term in STOP_TERMS:
            return False
        if " " in term and any(word in STOP_TERMS for word in term.split(" ")):
            return False
        return len(term.replace(" ", "")) >= self.options.min_word_length

    @staticmethod
    def _simulated_idf(terms: list[str], total_tokens: int) -> dict[str, float]:
        average_length = sum(len(t) for t in terms) / len(terms)
        scores: dict[str, float] = {}
        for term in terms:
            length_factor = len(term) / average_length
            head = term.split(" ")[0]
            sharing = sum(1 for t in terms if head in t)
            rarity = total_tokens / (sharing + 1)
            idf = math.log(total_tokens / (1 + length_factor)) * (1 + INV_PHI * rarity)
            scores[term] = max(1.0, idf)
        return scores

    @staticmethod
    def _length_weight(term: str) -> float:
        return 1 + fibonacci(len(term.replace(" ", ""))) / (PHI * 10)

    @staticmethod
    def _golden_boost(frequency: int, total_tokens: int) -> float:
        relative = frequency / total_tokens
        boost = 1.0
        for ratio in _GOLDEN_FREQUENCIES:
            distance = abs(relative - ratio)
            if distance < _GOLDEN_TOLERANCE:
                boost *= 1 + (1 - distance) * 0.5
        if relative > _OVER_FREQUENT:
            boost *= 0.7
        if relative < _UNDER_FREQUENT:
            boost *= 0.8
        return boost

    @staticmethod
    def _confidence(frequency: int, total_tokens: int, term_length: int) -> float:
        relative = frequency / total_tokens
        frequency_part = min(1.0, relative * PHI * 10)
        length_part = min(1.0, term_length / (PHI * 5))
        combined = frequency_part * INV_PHI + length_part * PHI
        return min(1.0, combined / (1 + PHI))


def _is_significant_bigram(first: str, second: str) -> bool:
    if first in STOP_TERMS or second in STOP_TERMS:
        return False
    return len(first) >= _BIGRAM_MIN_WORD_LENGTH and len(second) >= _BIGRAM_MIN_WORD_LENGTH


def extract_keywords(text: str | None, max_keywords: int | None = None, options: KeywordOptions | None = None) -> list[Keyword]:
    """Convenience wrapper around :meth:`KeywordScorer.extract`."""
    return KeywordScorer(options).extract(text, max_keywords)
