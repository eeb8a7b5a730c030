"""Tests for HTML to structured text conversion."""

from sec_retrieval.converter import TABLE_MARKER, clean_text, html_to_text


class TestTableRule:
    """Test table flattening."""

    def test_table_with_header_row(self):
        """Test that a 2x2 table becomes a marker, a bold header row and a data row."""
        html = "<table><tr><th>Year</th><th>Revenue</th></tr><tr><td> 2023 </td><td>383,285</td></tr></table>"
        assert html_to_text(html).splitlines() == [
            TABLE_MARKER,
            "",
            "**Year | Revenue**",
            "2023 | 383,285",
        ]

    def test_empty_row_is_omitted(self):
        """Test that rows with only blank cells disappear."""
        html = (
            "<table><tr><td>Cash</td><td>29,965</td></tr>"
            "<tr><td>&nbsp;</td><td>  </td></tr>"
            "<tr><td>Debt</td><td>95,281</td></tr></table>"
        )
        lines = html_to_text(html).splitlines()
        assert lines == [TABLE_MARKER, "", "Cash | 29,965", "Debt | 95,281"]

    def test_empty_cells_are_dropped_from_row(self):
        html = "<table><tr><td>Europe</td><td></td><td>$94,294</td></tr></table>"
        assert "Europe | $94,294" in html_to_text(html)

    def test_cell_whitespace_is_collapsed(self):
        html = "<table><tr><td>Total\n   net\tsales</td></tr></table>"
        assert "Total net sales" in html_to_text(html)

    def test_words_in_separate_nodes_stay_apart(self):
        html = (
            "<table><tr><td>Net<br/>sales</td>"
            "<td><p>Total</p><p>operating expenses</p></td></tr></table>"
        )
        assert "Net sales | Total operating expenses" in html_to_text(html)

    def test_table_without_content_produces_nothing(self):
        html = "<p>Before</p><table><tr><td>&nbsp;</td></tr></table><p>After</p>"
        text = html_to_text(html)
        assert TABLE_MARKER not in text
        assert text == "Before\n\nAfter"


class TestListRule:
    """Test list flattening."""

    def test_ordered_list_is_numbered(self):
        html = "<ol><li>First risk</li><li>Second risk</li></ol>"
        assert html_to_text(html) == "1. First risk\n2. Second risk"

    def test_unordered_list_is_dashed(self):
        html = "<ul><li>Exhibit 3.1</li><li>Exhibit 4.1</li></ul>"
        assert html_to_text(html) == "- Exhibit 3.1\n- Exhibit 4.1"

    def test_empty_items_are_skipped(self):
        html = "<ol><li>First</li><li>  </li><li>Third</li></ol>"
        assert html_to_text(html) == "1. First\n3. Third"

    def test_item_markup_keeps_words_apart(self):
        html = "<ul><li><p>Exhibit 10.1</p><p>Employment agreement</p></li></ul>"
        assert html_to_text(html) == "- Exhibit 10.1 Employment agreement"


class TestStripping:
    """Test removal of non-content markup."""

    def test_sample_filing(self, sample_html):
        text = html_to_text(sample_html)

        assert "# Apple Inc." in text
        assert "FORM 10-K" in text
        assert text.count(TABLE_MARKER) == 1
        assert "**Segment | Net sales**" in text
        assert "Americas | $162,560" in text
        assert "1. Global economic conditions" in text
        assert "3. Supply chain concentration" in text
        assert "- Exhibit 4.1" in text

        for dropped in ("drop me", "hidden xbrl facts", "EDGAR Viewer Navigation",
                        "Page footer", "Print", "logo", "aapl-20230930", "margin"):
            assert dropped not in text

    def test_no_empty_headings_or_runs_of_blank_lines(self, sample_html):
        text = html_to_text(sample_html)
        assert "\n\n\n" not in text
        assert all(line.strip("# ") for line in text.splitlines() if line.startswith("#"))
        assert text == text.strip()

    def test_hidden_style_variants(self):
        html = (
            '<div style="DISPLAY:NONE">a</div>'
            '<div style="color: red; display :none">b</div>'
            '<div style="visibility: hidden">c</div>'
            "<p>visible</p>"
        )
        assert html_to_text(html) == "visible"

    def test_nested_stripped_tags(self):
        html = '<header><nav>Menu<div style="display:none">x</div></nav></header><p>Body</p>'
        assert html_to_text(html) == "Body"

    def test_conversion_is_deterministic(self, sample_html):
        assert html_to_text(sample_html) == html_to_text(sample_html)


class TestCleanText:
    """Test post-processing of converted text."""

    def test_collapses_blank_lines(self):
        assert clean_text("a\n\n\n\n\nb") == "a\n\nb"
        assert clean_text("a\n \n\t\n\nb") == "a\n\nb"

    def test_removes_empty_headings(self):
        assert clean_text("##\nText\n# \nMore") == "Text\n\nMore"

    def test_collapses_horizontal_whitespace(self):
        assert clean_text("  Net   sales\t\tgrew  ") == "Net sales grew"

    def test_removes_separator_artifacts(self):
        assert clean_text("Intro\n| | | |\n|---|---|\n|\nOutro") == "Intro\n\nOutro"
