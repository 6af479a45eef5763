"""
Tests for the CLI input helpers in main.py.
"""

from __future__ import annotations

from main import _read_registry

from gazette_matcher.fields import build_registry_rows


class TestReadRegistry:
    def test_header_becomes_labels(self, tmp_path) -> None:
        path = tmp_path / "registry.csv"
        path.write_text("Name of the Deceased,ID No.\nJohn Kamau,1234567\n", encoding="utf-8")
        assert _read_registry(path) == [{"Name of the Deceased": "John Kamau", "ID No.": "1234567"}]

    def test_row_longer_than_header(self, tmp_path) -> None:
        path = tmp_path / "registry.csv"
        path.write_text("Name of the Deceased,ID No.\nJohn Kamau,1234567,stray note\n", encoding="utf-8")
        rows = _read_registry(path)
        assert rows[0]["extra"] == ["stray note"]

        resolved, skipped = build_registry_rows(rows)
        assert [r.name_raw for r in resolved] == ["John Kamau"]
        assert skipped == 0
