import io
import json

from data_designer_golden_text.cli import main


LETTER = (
    "Jakarta, 10 September 2024\n\nDear Maria,\n\n"
    "Thank you for hosting us during the Bali retreat.\n"
    "The team appreciated your hospitality and the insights shared.\n\n"
    "We hope to see you again soon.\n\nSincerely,\nAntonello Siano\nBali Zero"
)


def _write(tmp_path, text=LETTER):
    path = tmp_path / "doc.txt"
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestCli:
    def test_classify_json(self, tmp_path, capsys):
        assert main(["classify", _write(tmp_path), "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["type"] == "letter"
        assert payload["confidence"] > 0.5

    def test_classify_text(self, tmp_path, capsys):
        assert main(["classify", _write(tmp_path)]) == 0
        out = capsys.readouterr().out
        assert "Type: letter" in out
        assert "Key signals:" in out

    def test_analyze_json(self, tmp_path, capsys):
        assert main(["analyze", _write(tmp_path), "--no-cache", "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["input"]["length"] == len(LETTER)
        assert {"sections", "keywords", "patterns", "classification", "summary"} <= set(payload)

    def test_analyze_keywords_only(self, tmp_path, capsys):
        assert main(["analyze", _write(tmp_path), "--no-cache", "--keywords-only", "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert "keywords" in payload
        assert "sections" not in payload
        assert "classification" not in payload

    def test_analyze_persists_cache(self, tmp_path, capsys):
        cache_path = tmp_path / "cache.json"
        doc = _write(tmp_path)
        assert main(["analyze", doc, "--cache-path", str(cache_path)]) == 0
        assert cache_path.exists()
        capsys.readouterr()

        assert main(["analyze", doc, "--cache-path", str(cache_path), "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["cache"]["hits"] == 4

    def test_analyze_reads_stdin(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO("Dear friend,\nSee you soon.\nSincerely,\nAnna"))
        assert main(["analyze", "--no-cache"]) == 0
        out = capsys.readouterr().out
        assert "Length:" in out

    def test_patterns_recursive_with_fractal(self, tmp_path, capsys):
        doc = _write(tmp_path, "data quality matters. data lineage matters. data owners review data daily.")
        assert main(["patterns", doc, "--recursive", "--fractal", "--depth", "3", "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert 0.1 <= payload["fractal_dimension"] <= 2.0
        assert 'Recurring "data"' in [p["pattern"] for p in payload["patterns"]]

    def test_patterns_text(self, tmp_path, capsys):
        doc = _write(tmp_path, "Contact John Smith at john.smith@example.com. NASA and ESA agree.")
        assert main(["patterns", doc]) == 0
        assert "Patterns found" in capsys.readouterr().out

    def test_missing_file(self, tmp_path):
        assert main(["classify", str(tmp_path / "absent.txt")]) == 1

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "latin1.txt"
        path.write_bytes("Caro Mario, però grazie".encode("latin-1"))
        assert main(["classify", str(path)]) == 1
        assert main(["analyze", str(path), "--no-cache"]) == 1
