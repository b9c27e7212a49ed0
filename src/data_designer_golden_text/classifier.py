"""Rule-table document classification.

Each category owns a small bias and an ordered table of signal descriptors. A
signal is one of four kinds:

* ``keyword``: regex matches in the lower-cased text, weight scaled by match count
* ``metric``: a :class:`DocumentMetrics` value at or above a threshold
* ``absence``: a metric at or below a ceiling, ignored for very short texts
* ``ratio``: a fractional metric at or above a minimum ratio

Signal weights are Fibonacci numbers divided by PHI, and each fired signal is
boosted by its position in the table.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Literal

from data_designer_golden_text.golden import INV_PHI, PHI, round_half_up

DocumentType = Literal["invoice", "email", "contract", "report", "letter"]
SignalKind = Literal["keyword", "metric", "absence", "ratio"]

DOCUMENT_TYPES: tuple[DocumentType, ...] = ("invoice", "email", "contract", "report", "letter")
DEFAULT_DOCUMENT_TYPE: DocumentType = "letter"

_MAX_INTENSITY = 8
_MATCHED_FEATURES_LIMIT = 8
_ABSENCE_MIN_TOKENS = 4
_ABSENCE_MIN_CHARS = 40
_MAX_CONFIDENCE = 0.99


def _w(fib: int) -> float:
    return fib / PHI


def _round(value: float) -> float:
    return round_half_up(value, 3)


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DocumentMetrics:
    token_count: int = 0
    numeric_token_ratio: float = 0.0
    currency_count: int = 0
    invoice_number_count: int = 0
    email_count: int = 0
    url_count: int = 0
    bullet_count: int = 0
    uppercase_heading_count: int = 0
    greeting_lines: int = 0
    closing_lines: int = 0
    signature_lines: int = 0
    subject_lines: int = 0
    header_lines: int = 0
    section_keyword_lines: int = 0
    legal_clause_count: int = 0
    legal_all_caps_count: int = 0
    financial_summary_lines: int = 0
    date_lines: int = 0
    itemized_lines: int = 0
    reference_numbers: int = 0
    conclusion_lines: int = 0
    line_count: int = 0
    char_length: int = 0
    attachments: int = 0

    def to_payload(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class Signal:
    """Declarative signal descriptor.

    ``source`` is a compiled regex for ``keyword`` signals and a
    :class:`DocumentMetrics` field name for the other kinds.
    """

    kind: SignalKind
    source: re.Pattern[str] | str
    threshold: float
    weight: float
    label: str


@dataclass(frozen=True)
class CategoryRules:
    category: DocumentType
    bias: float
    signals: tuple[Signal, ...]


@dataclass(frozen=True)
class Feature:
    category: DocumentType
    description: str
    weight: float

    def to_payload(self) -> dict[str, object]:
        return {"category": self.category, "description": self.description, "weight": self.weight}


@dataclass(frozen=True)
class ClassificationResult:
    type: DocumentType
    confidence: float
    scores: dict[str, float]
    ranked: tuple[tuple[DocumentType, float], ...]
    features: tuple[Feature, ...]
    matched_features: tuple[Feature, ...]

    def to_payload(self) -> dict[str, object]:
        return {
            "type": self.type,
            "confidence": self.confidence,
            "scores": dict(self.scores),
            "ranked": [{"type": t, "score": s} for t, s in self.ranked],
            "features": [f.to_payload() for f in self.features],
            "matched_features": [f.to_payload() for f in self.matched_features],
        }


@dataclass(frozen=True)
class _Context:
    lower: str
    metrics: DocumentMetrics


# ---------------------------------------------------------------------------
# Signal table
# ---------------------------------------------------------------------------


def keyword(pattern: str, weight: float, label: str) -> Signal:
    return Signal("keyword", re.compile(pattern), 1, weight, label)


def metric(name: str, threshold: float, weight: float, label: str) -> Signal:
    return Signal("metric", name, threshold, weight, label)


def absence(name: str, ceiling: float, weight: float, label: str) -> Signal:
    return Signal("absence", name, ceiling, weight, label)


def ratio(name: str, min_ratio: float, weight: float, label: str) -> Signal:
    return Signal("ratio", name, min_ratio, weight, label)


BASE_BIAS = 1 / (PHI * 4)
LETTER_BIAS = 1 / (PHI * 2)

CATEGORY_RULES: tuple[CategoryRules, ...] = (
    CategoryRules("invoice", BASE_BIAS, (
        keyword(r"\binvoice\b", _w(13), "Keyword 'invoice'"),
        keyword(r"\bbill(?:ing)?\b", _w(8), "Billing vocabulary"),
        keyword(r"\b(?:due date|due on|net\s*\d{1,3})\b", _w(8), "Due date references"),
        keyword(r"\b(?:subtotal|total|amount due|balance due|tax|vat)\b", _w(8), "Financial summary wording"),
        metric("currency_count", 2, _w(13), "Multiple currency mentions"),
        metric("invoice_number_count", 1, _w(13), "Invoice number detected"),
        ratio("numeric_token_ratio", 0.18, _w(8), "High numeric density"),
        metric("itemized_lines", 2, _w(8), "Itemized table lines"),
        metric("financial_summary_lines", 2, _w(8), "Totals summary lines"),
    )),
    CategoryRules("email", BASE_BIAS, (
        keyword(r"\bsubject\b", _w(8), "Subject header"),
        keyword(r"\b(?:hi|hello|hey|ciao)\b", _w(8), "Casual salutation"),
        keyword(r"\b(?:regards|sincerely|thanks|cheers|best)\b", _w(8), "Closing phrase"),
        metric("email_count", 1, _w(13), "Email addresses"),
        metric("header_lines", 1, _w(13), "Email header block"),
        metric("greeting_lines", 1, _w(8), "Greeting line"),
        metric("closing_lines", 1, _w(8), "Closing line"),
        metric("attachments", 1, _w(5), "Attachment hint"),
        metric("url_count", 1, _w(5), "Links present"),
        absence("legal_clause_count", 1, _w(5), "Minimal legal clauses"),
    )),
    CategoryRules("contract", BASE_BIAS, (
        keyword(r"\b(?:agreement|contract|party|parties|hereby|herein|whereas)\b", _w(13), "Legal register"),
        keyword(r"\b(?:governing law|liability|confidentiality|witnesseth|indemnify)\b", _w(13), "Contract clauses"),
        metric("legal_clause_count", 3, _w(13), "Numerous legal clauses"),
        metric("legal_all_caps_count", 1, _w(8), "All-caps section headings"),
        metric("date_lines", 1, _w(5), "Effective date"),
        metric("signature_lines", 1, _w(5), "Signature block"),
        absence("header_lines", 0, _w(5), "No email header block"),
        metric("reference_numbers", 1, _w(5), "Reference identifiers"),
    )),
    CategoryRules("report", BASE_BIAS, (
        keyword(r"\b(?:report|summary|analysis|findings|results|overview|insights)\b", _w(8), "Analytical vocabulary"),
        metric("section_keyword_lines", 2, _w(8), "Structured sections"),
        metric("bullet_count", 1, _w(8), "Bullet lists"),
        metric("uppercase_heading_count", 1, _w(5), "Uppercase headings"),
        metric("conclusion_lines", 1, _w(8), "Conclusion / next steps"),
        ratio("numeric_token_ratio", 0.08, _w(5), "Quantitative references"),
    )),
    CategoryRules("letter", LETTER_BIAS, (
        keyword(r"\b(?:dear|greetings)\b", _w(8), "Personal salutation"),
        keyword(r"\b(?:sincerely|yours truly|kind regards|warm regards)\b", _w(8), "Formal closing"),
        metric("greeting_lines", 1, _w(8), "Greeting line"),
        metric("closing_lines", 1, _w(8), "Closing line"),
        metric("signature_lines", 1, _w(5), "Signature block"),
        metric("date_lines", 1, _w(5), "Date reference"),
        absence("header_lines", 0, _w(5), "No email routing headers"),
        absence("currency_count", 1, _w(3), "Limited financial jargon"),
        absence("legal_clause_count", 1, _w(3), "Limited legal jargon"),
        metric("line_count", 2, _w(3), "Multiple paragraphs"),
    )),
)

# ---------------------------------------------------------------------------
# Metric extraction
# ---------------------------------------------------------------------------

_NEWLINE_RE = re.compile(r"\r\n?")
_LINE_SPLIT_RE = re.compile(r"\n+")
_TOKEN_RE = re.compile(r"\b[^\W_](?:[^\W_]|[-'])*\b")
_NUMERIC_TOKEN_RE = re.compile(r"^\d+[\d.,-]*$")
_CURRENCY_RE = re.compile(r"(?:\$|€|£|¥|rp|idr|usd|eur|sgd|aud|cad)")
_INVOICE_NUMBER_RE = re.compile(r"\b(?:invoice|inv\.?|bill)\s*(?:no\.?|number|#)?\s*[:#]?\s*[a-z0-9-]{3,}\b")
_EMAIL_RE = re.compile(r"[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}")
_URL_RE = re.compile(r"(?:https?://|www\.)[\w./-]+")
_LEGAL_CLAUSE_RE = re.compile(
    r"\b(?:hereby|herein|whereas|hereto|party|parties|liability|indemnify|governing law|force majeure|assignment)\b"
)
_REFERENCE_RE = re.compile(r"\bref(?:erence)?\.?\s*[:#]?\s*[a-z0-9-]{4,}\b")
_ATTACHMENT_RE = re.compile(r"\battachment(s)?|attached\b")

_BULLET_LINE_RE = re.compile(r"^[-*•]")
_UPPERCASE_LETTER_RE = re.compile(r"[A-Z]")
_GREETING_LINE_RE = re.compile(r"^(dear|hi|hello|ciao|good (morning|afternoon|evening))", re.IGNORECASE)
_CLOSING_LINE_RE = re.compile(r"(regards|sincerely|yours|cordially|warm regards|kind regards|thank you)", re.IGNORECASE)
_SIGNATURE_LINE_RE = re.compile(r"(regards|sincerely|yours|thank you|best)", re.IGNORECASE)
_SUBJECT_LINE_RE = re.compile(r"^subject\s*:", re.IGNORECASE)
_HEADER_LINE_RE = re.compile(r"^(from|to|cc|bcc)\s*:", re.IGNORECASE)
_SECTION_LINE_RE = re.compile(
    r"(summary|overview|analysis|results|methodology|conclusion|findings|insights)", re.IGNORECASE
)
_LEGAL_CAPS_LINE_RE = re.compile(r"\bSECTION\s+\d+\b|WITNESSETH")
_FINANCIAL_LINE_RE = re.compile(r"(subtotal|total|balance due|amount due|tax|vat|wire transfer)", re.IGNORECASE)
_DATE_LINE_RE = re.compile(
    r"\b(?:\d{1,2}[/.-]\d{1,2}[/.-]\d{2,4}|\d{1,2}\s+(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\s+\d{2,4})\b",
    re.IGNORECASE,
)
_ITEMIZED_LINE_RE = re.compile(r"(item|qty|quantity|unit price|description)", re.IGNORECASE)
_CONCLUSION_LINE_RE = re.compile(r"(conclusion|next steps|recommendations|action items)", re.IGNORECASE)

_SIGNATURE_TAIL_LINES = 4


def _count(pattern: re.Pattern[str], text: str) -> int:
    return sum(1 for _ in pattern.finditer(text))


def _lines_matching(pattern: re.Pattern[str], lines: list[str], *, anchored: bool = False) -> int:
    test = pattern.match if anchored else pattern.search
    return sum(1 for line in lines if test(line))


def extract_metrics(text: str | None) -> tuple[str, DocumentMetrics]:
    """Return the lower-cased normalized text and its :class:`DocumentMetrics`."""
    normalized = _NEWLINE_RE.sub("\n", text or "")
    lower = normalized.lower()
    tokens = _TOKEN_RE.findall(lower)
    lines = [line.strip() for line in _LINE_SPLIT_RE.split(normalized) if line.strip()]
    numeric_tokens = sum(1 for token in tokens if _NUMERIC_TOKEN_RE.match(token))

    metrics = DocumentMetrics(
        token_count=len(tokens),
        numeric_token_ratio=numeric_tokens / len(tokens) if tokens else 0.0,
        currency_count=_count(_CURRENCY_RE, lower),
        invoice_number_count=_count(_INVOICE_NUMBER_RE, lower),
        email_count=_count(_EMAIL_RE, lower),
        url_count=_count(_URL_RE, lower),
        bullet_count=_lines_matching(_BULLET_LINE_RE, lines, anchored=True),
        uppercase_heading_count=sum(
            1 for line in lines
            if len(line) > 4 and line == line.upper() and _UPPERCASE_LETTER_RE.search(line)
        ),
        greeting_lines=_lines_matching(_GREETING_LINE_RE, lines, anchored=True),
        closing_lines=_lines_matching(_CLOSING_LINE_RE, lines),
        signature_lines=_lines_matching(_SIGNATURE_LINE_RE, lines[-_SIGNATURE_TAIL_LINES:]),
        subject_lines=_lines_matching(_SUBJECT_LINE_RE, lines, anchored=True),
        header_lines=_lines_matching(_HEADER_LINE_RE, lines, anchored=True),
        section_keyword_lines=_lines_matching(_SECTION_LINE_RE, lines),
        legal_clause_count=_count(_LEGAL_CLAUSE_RE, lower),
        legal_all_caps_count=_lines_matching(_LEGAL_CAPS_LINE_RE, lines),
        financial_summary_lines=_lines_matching(_FINANCIAL_LINE_RE, lines),
        date_lines=_lines_matching(_DATE_LINE_RE, lines),
        itemized_lines=_lines_matching(_ITEMIZED_LINE_RE, lines),
        reference_numbers=_count(_REFERENCE_RE, lower),
        conclusion_lines=_lines_matching(_CONCLUSION_LINE_RE, lines),
        line_count=len(lines),
        char_length=len(normalized),
        attachments=_count(_ATTACHMENT_RE, lower),
    )
    return lower, metrics


# ---------------------------------------------------------------------------
# Signal evaluation
# ---------------------------------------------------------------------------


def _format_value(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _evaluate_signal(signal: Signal, ctx: _Context) -> tuple[float, str] | None:
    """Return ``(weight, description)`` when ``signal`` fires, otherwise ``None``."""
    if signal.kind == "keyword":
        hits = _count(signal.source, ctx.lower)
        if not hits:
            return None
        intensity = min(hits, _MAX_INTENSITY)
        weight = signal.weight * (1 + (intensity - 1) / (PHI * 2))
        return _round(weight), f"{signal.label} ({hits})"

    if signal.kind == "absence":
        if ctx.metrics.token_count < _ABSENCE_MIN_TOKENS or ctx.metrics.char_length < _ABSENCE_MIN_CHARS:
            return None
        value = getattr(ctx.metrics, signal.source)
        if value > signal.threshold:
            return None
        weight = signal.weight * (1 + (signal.threshold - value) / (PHI * 5))
        return _round(weight), f"{signal.label} (≤ {_format_value(signal.threshold)})"

    value = getattr(ctx.metrics, signal.source)
    if value < signal.threshold:
        return None
    # A zero threshold saturates the intensity at PHI.
    intensity = PHI if signal.threshold <= 0 else min(value / signal.threshold, PHI)
    weight = signal.weight * intensity
    if signal.kind == "ratio":
        return _round(weight), f"{signal.label} (ratio {value * 100:.1f}%)"
    return _round(weight), f"{signal.label} ({_format_value(value)})"


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------


class DocumentClassifier:
    """Rank the fixed document categories by accumulated signal evidence."""

    def __init__(self, rules: tuple[CategoryRules, ...] = CATEGORY_RULES) -> None:
        self.rules = rules

    def classify(self, text: str | None) -> ClassificationResult:
        lower, metrics = extract_metrics(text)
        ctx = _Context(lower=lower, metrics=metrics)

        scores: dict[str, float] = {}
        by_category: dict[str, list[Feature]] = {}
        for rules in self.rules:
            score = rules.bias
            fired = []
            for index, signal in enumerate(rules.signals):
                outcome = _evaluate_signal(signal, ctx)
                if outcome is None:
                    continue
                weight, description = outcome
                boosted = _round(weight * (1 + index / (PHI * 8)))
                score += boosted
                fired.append(Feature(rules.category, description, boosted))
            scores[rules.category] = _round(score)
            by_category[rules.category] = sorted(fired, key=lambda f: f.weight, reverse=True)

        features = sorted(
            (f for fired in by_category.values() for f in fired),
            key=lambda f: f.weight,
            reverse=True,
        )
        ranked = tuple(sorted(scores.items(), key=lambda item: item[1], reverse=True))

        if not features:
            return ClassificationResult(
                type=DEFAULT_DOCUMENT_TYPE,
                confidence=0.0,
                scores=scores,
                ranked=ranked,
                features=(),
                matched_features=(),
            )

        best_type, best = ranked[0]
        second = ranked[1][1] if len(ranked) > 1 else 0.0
        confidence = 0.0 if best <= 0 else min(_MAX_CONFIDENCE, best / (best + second / PHI + INV_PHI))

        return ClassificationResult(
            type=best_type,
            confidence=_round(confidence),
            scores=scores,
            ranked=ranked,
            features=tuple(features),
            matched_features=tuple(by_category[best_type][:_MATCHED_FEATURES_LIMIT]),
        )

    def classify_batch(self, texts: list[str]) -> list[ClassificationResult]:
        return [self.classify(text) for text in texts]
