"""
Tests for the configurable status extractors.
"""

import pytest

from serverwatch.app.extractors import (
    BlockExtractor,
    ExtractionEmpty,
    ExtractorConfigError,
    TableExtractor,
    TextExtractor,
    build_extractor,
    load_extractor,
    normalize_text,
)
from serverwatch.app.snapshot import StatusEntry


TABLE_HTML = """
<html><body>
<table>
  <thead><tr><th>Realm</th><th>State</th></tr></thead>
  <tbody>
    <tr><td>  Auth Server </td><td>Up</td></tr>
    <tr><td>World
        Server</td><td> Down </td></tr>
    <tr><td></td><td>Up</td></tr>
    <tr><td>Broken row</td></tr>
    <tr><td>Auth Server</td><td>Down</td></tr>
  </tbody>
</table>
</body></html>
"""

BLOCKS_HTML = """
<div class="server"><h3 class="server-name">Auth Server</h3><span class="server-status">Online</span></div>
<div class="server"><h3 class="server-name">World Server</h3><span class="server-status offline"></span></div>
<div class="server"><h3 class="server-name">No status</h3></div>
"""

TEXT_HTML = """
<html><body>
<p>Realm overview. World Server - Offline for maintenance.</p>
<p>Auth Server: Online</p>
<p>Updated just now</p>
</body></html>
"""


class TestNormalizeText:
    def test_collapses_whitespace(self):
        assert normalize_text("  World \n\t Server ") == "World Server"

    def test_none_and_empty(self):
        assert normalize_text(None) == ""
        assert normalize_text("   ") == ""

    def test_unicode_normalized(self):
        """Full-width characters fold to their ASCII form."""
        assert normalize_text("Ｕｐ") == "Up"


class TestTableExtractor:
    def test_rows_in_document_order(self):
        entries = TableExtractor().extract(TABLE_HTML)
        assert entries == [
            StatusEntry("Auth Server", "Up"),
            StatusEntry("World Server", "Down"),
        ]

    def test_empty_names_and_short_rows_dropped(self):
        names = [e.name for e in TableExtractor().extract(TABLE_HTML)]
        assert "" not in names
        assert "Broken row" not in names

    def test_duplicate_name_keeps_first(self):
        entries = TableExtractor().extract(TABLE_HTML)
        auth = [e for e in entries if e.name == "Auth Server"]
        assert auth == [StatusEntry("Auth Server", "Up")]

    def test_accepts_bytes(self):
        entries = TableExtractor().extract(TABLE_HTML.encode("utf-8"))
        assert entries[0].name == "Auth Server"

    def test_deterministic(self):
        ex = TableExtractor()
        assert ex.extract(TABLE_HTML) == ex.extract(TABLE_HTML)

    def test_custom_columns(self):
        html = "<table><tbody><tr><td>1</td><td>Down</td><td>Login</td></tr></tbody></table>"
        entries = TableExtractor(name_column=2, status_column=1).extract(html)
        assert entries == [StatusEntry("Login", "Down")]

    def test_no_table_raises_empty(self):
        with pytest.raises(ExtractionEmpty):
            TableExtractor().extract("<html><body><p>Site moved</p></body></html>")

    def test_negative_column_rejected(self):
        with pytest.raises(ExtractorConfigError):
            TableExtractor(name_column=-1)

    def test_malformed_selector_rejected_at_construction(self):
        """A broken selector fails when the config loads, never inside extract()."""
        with pytest.raises(ExtractorConfigError, match="row_selector"):
            TableExtractor(row_selector="tbody tr[[")


class TestBlockExtractor:
    def _extractor(self):
        return BlockExtractor(
            block_selector="div.server",
            name_selector=".server-name",
            status_selector=".server-status",
            status_classes={"Online": "Up", "offline": "Down"},
        )

    def test_text_and_class_statuses(self):
        entries = self._extractor().extract(BLOCKS_HTML)
        assert entries == [
            StatusEntry("Auth Server", "Online"),
            StatusEntry("World Server", "Down"),
        ]

    def test_block_without_status_skipped(self):
        names = [e.name for e in self._extractor().extract(BLOCKS_HTML)]
        assert "No status" not in names

    def test_malformed_selector_rejected_at_construction(self):
        with pytest.raises(ExtractorConfigError, match="status_selector"):
            BlockExtractor(block_selector="div.server", name_selector=".server-name",
                           status_selector="span[class=")

    def test_table_page_is_empty_for_blocks(self):
        with pytest.raises(ExtractionEmpty):
            self._extractor().extract(TABLE_HTML)


class TestTextExtractor:
    def test_ordered_by_position(self):
        ex = TextExtractor(labels=["Auth Server", "World Server"],
                           status_pattern="Online|Offline")
        assert ex.extract(TEXT_HTML) == [
            StatusEntry("World Server", "Offline"),
            StatusEntry("Auth Server", "Online"),
        ]

    def test_missing_label_omitted(self):
        ex = TextExtractor(labels=["Auth Server", "Chat Server"], status_pattern="Online|Offline")
        assert ex.extract(TEXT_HTML) == [StatusEntry("Auth Server", "Online")]

    def test_case_sensitive_mode(self):
        ex = TextExtractor(labels=["auth server"], status_pattern="Online", case_insensitive=False)
        with pytest.raises(ExtractionEmpty):
            ex.extract(TEXT_HTML)

    def test_requires_labels(self):
        with pytest.raises(ExtractorConfigError):
            TextExtractor(labels=[" "])

    def test_bad_pattern(self):
        with pytest.raises(ExtractorConfigError):
            TextExtractor(labels=["Auth Server"], status_pattern="(Up")


class TestBuildExtractor:
    def test_builds_each_strategy(self):
        assert isinstance(build_extractor({"strategy": "table"}), TableExtractor)
        assert isinstance(build_extractor({
            "strategy": "blocks",
            "blocks": {"block_selector": "div", "name_selector": "h3", "status_selector": "span"},
        }), BlockExtractor)
        assert isinstance(build_extractor({
            "strategy": "text", "text": {"labels": ["Auth Server"]},
        }), TextExtractor)

    @pytest.mark.parametrize("cfg", [
        None,
        {"strategy": "xpath"},
        {"strategy": ["table"]},
        {"strategy": {"name": "table"}},
        {"strategy": "table", "table": {"row_selector": "tbody tr[["}},
        {"strategy": "table", "table": {"row_selector": ""}},
        {"strategy": "blocks", "blocks": {
            "block_selector": "div.server", "name_selector": "h3[", "status_selector": "span"}},
        {"strategy": "blocks", "blocks": {
            "block_selector": "div.server", "name_selector": "h3", "status_selector": 5}},
        {"strategy": "table", "table": ["tbody tr"]},
        {"strategy": "table", "table": {"row_selctor": "tr"}},
        {"strategy": "blocks", "blocks": {}},
    ])
    def test_invalid_config(self, cfg):
        with pytest.raises(ExtractorConfigError):
            build_extractor(cfg)

    def test_load_from_yaml(self, tmp_path):
        p = tmp_path / "extractor.yaml"
        p.write_text("strategy: table\ntable:\n  row_selector: 'tr'\n  status_column: 2\n", encoding="utf-8")
        ex = load_extractor(p)
        assert isinstance(ex, TableExtractor)
        assert ex.row_selector == "tr"
        assert ex.status_column == 2

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ExtractorConfigError):
            load_extractor(tmp_path / "nope.yaml")

    def test_load_invalid_yaml(self, tmp_path):
        p = tmp_path / "extractor.yaml"
        p.write_text("strategy: [table\n", encoding="utf-8")
        with pytest.raises(ExtractorConfigError):
            load_extractor(p)
