"""Command line entry point: ``golden-text analyze|classify|patterns``."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from data_designer_golden_text.cache import CacheOptions, ScoringCache
from data_designer_golden_text.classifier import DocumentClassifier
from data_designer_golden_text.golden import PHI
from data_designer_golden_text.patterns import MAX_LEVEL, PatternDetector, PatternOptions
from data_designer_golden_text.pipeline import AnalysisResult, Pipeline

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 60


def _read_input(path: str | None) -> str:
    if path is None or path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _emit_json(payload: object) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _print_analysis(result: AnalysisResult) -> None:
    print(f"Length: {result.length} characters")
    if result.summary is not None:
        print(f"Golden ratio: {result.summary.golden_ratio}  complexity: {result.summary.complexity}  "
              f"confidence: {result.summary.confidence}  ({result.summary.processing_time_ms} ms)")
    print(f"Cache: {result.cache.hits} hits, {result.cache.misses} misses")
    if result.sections:
        print(f"\nSections ({len(result.sections)}):")
        for i, section in enumerate(result.sections, 1):
            preview = " ".join(section.content.split())[:_PREVIEW_CHARS]
            print(f"  {i}. {preview}  ({section.ratio * 100:.1f}%)")
    if result.keywords:
        print(f"\nKeywords ({len(result.keywords)}):")
        for i, kw in enumerate(result.keywords[:5], 1):
            print(f"  {i}. {kw.term:<20} score: {kw.score:.4f} freq: {kw.frequency}")
    if result.patterns:
        print(f"\nPatterns ({len(result.patterns)}):")
        for i, p in enumerate(result.patterns[:5], 1):
            print(f"  {i}. {p.pattern:<25} freq: {p.frequency} score: {p.score:.4f}")
    if result.classification is not None:
        print(f"\nDocument type: {result.classification.type} ({result.classification.confidence:.1%})")


def _cmd_analyze(args: argparse.Namespace) -> int:
    cache = None
    if not args.no_cache:
        cache = ScoringCache(CacheOptions(persist_path=args.cache_path))
    pipeline = Pipeline(cache=cache)
    text = _read_input(args.path)

    selected = {
        "sections": args.sections_only,
        "keywords": args.keywords_only,
        "patterns": args.patterns_only,
    }
    if any(selected.values()):
        result = pipeline.analyze_partial(text, **selected)
    else:
        result = pipeline.analyze(text)

    if args.json:
        _emit_json(result.to_payload())
    else:
        _print_analysis(result)
    pipeline.persist_cache()
    return 0


def _cmd_classify(args: argparse.Namespace) -> int:
    result = DocumentClassifier().classify(_read_input(args.path))
    if args.json:
        _emit_json(result.to_payload())
        return 0
    print(f"Type: {result.type}")
    print(f"Confidence: {result.confidence:.1%}")
    print("Scores:")
    for category, score in result.ranked:
        print(f"  - {category}: {score:.3f}")
    if result.matched_features:
        print("Key signals:")
        for feature in result.matched_features:
            print(f"  - {feature.description} (weight {feature.weight:.2f})")
    else:
        print("No strong signals detected.")
    return 0


def _cmd_patterns(args: argparse.Namespace) -> int:
    detector = PatternDetector(PatternOptions(max_depth=args.depth))
    text = _read_input(args.path)
    matches = detector.find_recursive_patterns(text, args.depth) if args.recursive else detector.find_patterns(text)

    if args.json:
        payload: dict[str, object] = {"patterns": [m.to_payload() for m in matches]}
        if args.fractal:
            payload["fractal_dimension"] = detector.calculate_fractal_dimension(text)
        _emit_json(payload)
        return 0

    if args.fractal:
        print(f"Fractal dimension: {detector.calculate_fractal_dimension(text):.4f}")
    print(f"Patterns found (phi = {PHI}):")
    for i, match in enumerate(matches, 1):
        print(f"{i:>2}. {match.pattern}")
        print(f"    score: {match.score:.4f} | freq: {match.frequency} | golden: {match.golden_ratio:.3f}")
        for occurrence in match.occurrences[:3]:
            print(f"      {occurrence.text!r} (conf: {occurrence.confidence:.3f}, level: {occurrence.level})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="golden-text", description="Golden-ratio text analysis")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Run the full analysis pipeline")
    analyze.add_argument("path", nargs="?", help="Input file, or '-' / omitted for stdin")
    analyze.add_argument("--json", action="store_true", help="Print the result as JSON")
    analyze.add_argument("--no-cache", action="store_true", help="Disable the result cache")
    analyze.add_argument("--cache-path", help="Snapshot file to load and persist the cache")
    analyze.add_argument("--sections-only", action="store_true")
    analyze.add_argument("--keywords-only", action="store_true")
    analyze.add_argument("--patterns-only", action="store_true")
    analyze.set_defaults(handler=_cmd_analyze)

    classify = sub.add_parser("classify", help="Classify the document type")
    classify.add_argument("path", nargs="?", help="Input file, or '-' / omitted for stdin")
    classify.add_argument("--json", action="store_true", help="Print the result as JSON")
    classify.set_defaults(handler=_cmd_classify)

    patterns = sub.add_parser("patterns", help="Detect level-ordered or recurring patterns")
    patterns.add_argument("path", nargs="?", help="Input file, or '-' / omitted for stdin")
    patterns.add_argument("--json", action="store_true", help="Print the result as JSON")
    patterns.add_argument("--recursive", action="store_true", help="Report recurring terms in self-similar segments")
    patterns.add_argument("--fractal", action="store_true", help="Also print the fractal dimension")
    patterns.add_argument("--depth", type=int, default=MAX_LEVEL, choices=range(1, MAX_LEVEL + 1))
    patterns.set_defaults(handler=_cmd_patterns)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    try:
        return args.handler(args)
    except (OSError, UnicodeDecodeError) as exc:
        logger.error(f"cannot read input: {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
