"""
Tests for the substitution planner: text substitution and structural tables.
"""
import re

import pytest

from gtemplates.errors import CellNotFoundError, UnknownSectionNameError
from gtemplates.mutations import (
    DeleteRange,
    InsertTable,
    InsertText,
    MergeCells,
    RemoveTableBorders,
    ReplaceAllText,
    SetColumnWidth,
    SetParagraphStyle,
    SetTextStyle,
)
from gtemplates.planner import (
    apply_text_operations,
    build_table_fill,
    placeholder_spellings,
    plan_marker_table,
    plan_section_tables,
    plan_substitution,
)
from gtemplates.sections import AssetField, AssetSection, KeyValuePair, Section, render_asset_sections_text
from gtemplates.table_layout import layout
from gtemplates.text_extractor import extract


class TestPlaceholderSpellings:
    """Tests for placeholder_spellings."""

    def test_known_spellings(self):
        assert placeholder_spellings("x") == [
            "{{x}}",
            "{{ x }}",
            "{{x:text}}",
            "{{x:number}}",
            "{{x:date}}",
            "{{x:email}}",
        ]

    def test_found_spellings_are_added_once(self):
        spellings = placeholder_spellings("x", ["{{x}}", "{{ x : date }}", "{{ x : date }}"])

        assert spellings[-1] == "{{ x : date }}"
        assert spellings.count("{{ x : date }}") == 1
        assert len(spellings) == 7


class TestPlanSubstitution:
    """Tests for the text-substitution strategy."""

    def test_round_trip_removes_every_spelling(self, doc_builder):
        doc = doc_builder()
        doc.paragraph("Dear {{client_name}},")
        doc.paragraph("Client: {{ client_name }} / {{client_name:text}} / {{ client_name : text }}")
        doc.paragraph("Keep {{other}}")
        document = doc.build()

        operations = plan_substitution({"client_name": "Acme"}, [], document)
        output = apply_text_operations(extract(document).text, operations)

        assert not re.search(r"\{\{\s*client_name", output)
        assert output.count("Acme") == 4
        assert "{{other}}" in output

    def test_only_replace_all_operations(self, invoice_document):
        operations = plan_substitution({"client_name": "Acme", "due_date": "2024-01-31"}, [], invoice_document)

        assert operations
        assert all(isinstance(op, ReplaceAllText) and op.match_case for op in operations)

    def test_missing_value_becomes_empty(self, invoice_document):
        operations = plan_substitution({"client_name": None}, [], invoice_document)

        assert operations[0].replace_text == ""

    def test_asset_blocks_are_replaced_first(self, invoice_document):
        sections = [AssetSection(title="Land", fields=(AssetField("Tanah", "100 m2"),))]

        operations = plan_substitution({"client_name": "Acme"}, sections, invoice_document)

        first = operations[0]
        assert first.find_text == (
            "{{#ASSET_SECTION:Property}}{{Tanah}} {{Bangunan}}{{/#ASSET_SECTION:Property}}"
        )
        assert first.replace_text == render_asset_sections_text(sections)
        assert all("client_name" in op.find_text for op in operations[1:])

    def test_one_operation_per_block_name(self, doc_builder):
        doc = doc_builder()
        doc.paragraph("{{#ASSET_SECTION:P}}a{{/#ASSET_SECTION:P}}")
        doc.paragraph("{{#ASSET_SECTION:P}}b{{/#ASSET_SECTION:P}}")
        doc.paragraph("{{#ASSET_SECTION:Q}}c{{/#ASSET_SECTION:Q}}")
        sections = [AssetSection(title="T", fields=(AssetField("k", "v"),))]

        operations = plan_substitution({}, sections, doc.build())

        assert [op.find_text for op in operations] == [
            "{{#ASSET_SECTION:P}}a{{/#ASSET_SECTION:P}}",
            "{{#ASSET_SECTION:Q}}c{{/#ASSET_SECTION:Q}}",
        ]

    def test_blocks_untouched_without_asset_sections(self, invoice_document):
        operations = plan_substitution({}, [], invoice_document)

        assert operations == []

    def test_min_padding(self, invoice_document):
        sections = [AssetSection(title="T", fields=(AssetField("k", "v"),))]

        (operation,) = plan_substitution({}, sections, invoice_document, min_padding=5)

        assert operation.replace_text == "T\nk    : v"


class TestApplyTextOperations:
    """Tests for apply_text_operations."""

    def test_in_order(self):
        operations = [
            ReplaceAllText(find_text="a", replace_text="b"),
            ReplaceAllText(find_text="b", replace_text="c"),
        ]

        assert apply_text_operations("ab", operations) == "cc"

    def test_case_insensitive(self):
        operations = [ReplaceAllText(find_text="NAME", replace_text="x", match_case=False)]

        assert apply_text_operations("name Name NAME", operations) == "x x x"

    def test_other_operations_ignored(self):
        assert apply_text_operations("abc", [InsertText(at=1, text="z")]) == "abc"


class TestBuildTableFill:
    """Tests for filling a table with shifted indices."""

    def setup_method(self):
        self.section = Section(
            title="T",
            key_value_pairs=(KeyValuePair("Zeta", "2"), KeyValuePair("Alpha", "1")),
        )
        self.layout = layout(self.section)
        self.table = InsertTable(at=7, rows=3, columns=2).geometry.to_table()

    def test_exact_operations(self):
        operations = build_table_fill(self.table, self.layout, marker_range=(25, 43))

        assert operations == [
            MergeCells(table_start=8, row=0, column=0, row_span=1, column_span=2),
            InsertText(at=12, text="T"),
            SetTextStyle(start_index=12, end_index=13, bold=True, font_size=14),
            SetParagraphStyle(start_index=12, end_index=13, alignment="CENTER"),
            InsertText(at=18, text="Zeta"),
            SetTextStyle(start_index=18, end_index=22, bold=True, font_size=12),
            InsertText(at=24, text="2"),
            SetTextStyle(start_index=24, end_index=25, bold=False, font_size=12),
            InsertText(at=28, text="Alpha"),
            SetTextStyle(start_index=28, end_index=33, bold=True, font_size=12),
            InsertText(at=35, text="1"),
            SetTextStyle(start_index=35, end_index=36, bold=False, font_size=12),
            RemoveTableBorders(table_start=8, row_span=3, column_span=2),
            SetColumnWidth(table_start=8, column_indices=(0,), width=200),
            SetColumnWidth(table_start=8, column_indices=(1,), width=300),
            DeleteRange(start_index=37, end_index=55),
        ]

    def test_without_marker(self):
        operations = build_table_fill(self.table, self.layout)

        assert not any(isinstance(op, DeleteRange) for op in operations)

    def test_non_bmp_value_shifts_by_utf16_length(self):
        section = Section(title="T", key_value_pairs=(KeyValuePair("Mood", "😀"),))
        table = InsertTable(at=7, rows=2, columns=2).geometry.to_table()

        operations = build_table_fill(table, layout(section), marker_range=(21, 34))

        assert InsertText(at=24, text="😀") in operations
        assert SetTextStyle(start_index=24, end_index=26, bold=False, font_size=12) in operations
        assert operations[-1] == DeleteRange(start_index=28, end_index=41)

    def test_table_too_small(self):
        small = InsertTable(at=7, rows=1, columns=2).geometry.to_table()

        with pytest.raises(CellNotFoundError):
            build_table_fill(small, self.layout)


class TestPlanSectionTables:
    """Tests for the structural-table strategy."""

    def test_single_marker(self, doc_builder):
        doc = doc_builder()
        doc.paragraph("Intro")
        doc.paragraph("[[section:Assets]]")
        sections = {"Assets": Section("T", (KeyValuePair("Zeta", "2"), KeyValuePair("Alpha", "1")))}

        plan = plan_section_tables(sections, doc.build())

        assert plan.rendered == ["Assets"]
        assert plan.skipped == []
        assert plan.operations[0] == InsertTable(at=7, rows=3, columns=2)
        assert plan.operations[-1] == DeleteRange(start_index=37, end_index=55)
        assert plan.operations == plan_marker_table(7, 25, layout(sections["Assets"]))

    def test_emoji_before_marker(self, doc_builder):
        doc = doc_builder()
        doc.paragraph("😀 [[section:S]]")
        section = Section("T", (KeyValuePair("k", "v"),))

        plan = plan_section_tables({"S": section}, doc.build())

        # The emoji takes two index slots, so the marker starts at 4
        assert plan.operations[0] == InsertTable(at=4, rows=2, columns=2)
        assert plan.operations == plan_marker_table(4, 17, layout(section))

    def test_markers_processed_last_to_first(self, doc_builder):
        doc = doc_builder()
        doc.paragraph("[[section:A]]")
        doc.paragraph("[[section:B]]")
        sections = {
            "A": Section("A", (KeyValuePair("k", "v"),)),
            "B": Section("B", (KeyValuePair("k", "v"),)),
        }

        plan = plan_section_tables(sections, doc.build())

        tables = [op for op in plan.operations if isinstance(op, InsertTable)]
        # "[[section:A]]\n" occupies 1-15, B starts at 15
        assert [t.at for t in tables] == [15, 1]
        assert plan.rendered == ["A", "B"]

    def test_unknown_section_is_skipped(self, doc_builder):
        doc = doc_builder()
        doc.paragraph("[[section:Missing]]")
        doc.paragraph("[[section:Known]]")
        sections = {"Known": Section("K", (KeyValuePair("k", "v"),))}

        plan = plan_section_tables(sections, doc.build())

        assert plan.rendered == ["Known"]
        (skipped,) = plan.skipped
        assert skipped.name == "Missing"
        assert isinstance(skipped.error, UnknownSectionNameError)
        assert skipped.to_dict()["error"]["context"]["available_sections"] == ["Known"]

    def test_section_without_pairs_is_skipped(self, doc_builder):
        doc = doc_builder()
        doc.paragraph("[[section:Empty]]")

        plan = plan_section_tables({"Empty": Section("E", ())}, doc.build())

        assert plan.operations == []
        assert plan.skipped[0].reason == "missing title or empty key/value pairs"
        assert plan.skipped[0].error is None
