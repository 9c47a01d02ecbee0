"""
Tests for asset section and section data helpers.
"""
from gtemplates.sections import (
    DEFAULT_ASSET_KEYS,
    DEFAULT_ASSET_TITLE,
    AssetField,
    AssetSection,
    KeyValuePair,
    Section,
    create_default_asset_section,
    key_padding,
    parse_template_fields,
    render_asset_sections_preview,
    render_asset_sections_text,
    validate_asset_section,
)


class TestParseTemplateFields:
    """Tests for parse_template_fields."""

    def test_fields_in_order(self):
        assert parse_template_fields("{{Tanah}} {{Bangunan}}") == ["Tanah", "Bangunan"]

    def test_no_duplicates(self):
        assert parse_template_fields("{{Tanah}} {{Bangunan}} {{Tanah}}") == ["Tanah", "Bangunan"]

    def test_names_are_trimmed(self):
        assert parse_template_fields("{{ Lokasi }}") == ["Lokasi"]

    def test_no_fields(self):
        assert parse_template_fields("plain text") == []


class TestAssetSection:
    """Tests for AssetSection construction and copy-on-write helpers."""

    def test_default_section(self):
        section = create_default_asset_section()

        assert section.title == DEFAULT_ASSET_TITLE
        assert [f.key for f in section.fields] == list(DEFAULT_ASSET_KEYS)
        assert all(f.value == "" for f in section.fields)

    def test_ids_are_unique(self):
        first = create_default_asset_section()
        second = create_default_asset_section()

        assert first.id != second.id
        assert len({f.id for f in first.fields}) == len(first.fields)

    def test_with_title_keeps_original(self):
        section = AssetSection(title="Old", fields=(AssetField("k", "v"),))

        renamed = section.with_title("New")

        assert section.title == "Old"
        assert renamed.title == "New"
        assert renamed.id == section.id
        assert renamed.fields == section.fields

    def test_with_fields(self):
        section = AssetSection(title="T")

        updated = section.with_fields([AssetField("a", "1")])

        assert section.fields == ()
        assert [f.key for f in updated.fields] == ["a"]

    def test_from_dict(self):
        section = AssetSection.from_dict(
            {"id": "asset_1", "title": "Land", "fields": [{"key": "Area", "value": "100 m2", "id": "f1"}]}
        )

        assert section.id == "asset_1"
        assert section.fields == (AssetField(key="Area", value="100 m2", id="f1"),)


class TestValidateAssetSection:
    """Tests for validate_asset_section."""

    def test_valid(self):
        section = AssetSection(title="T", fields=(AssetField("k", "v"),))
        assert validate_asset_section(section) == []

    def test_missing_everything(self):
        assert validate_asset_section(AssetSection(title=" ")) == [
            "Section title is required",
            "At least one field is required",
        ]

    def test_field_numbers_are_one_based(self):
        section = AssetSection(title="T", fields=(AssetField("k", "v"), AssetField("", "")))

        assert validate_asset_section(section) == [
            "Field 2: Key is required",
            "Field 2: Value is required",
        ]


class TestRendering:
    """Tests for plain-text asset section rendering."""

    def test_key_padding_minimum(self):
        assert key_padding(["short"], min_padding=30) == 30

    def test_key_padding_long_key(self):
        assert key_padding(["x" * 40], min_padding=30) == 42

    def test_colons_line_up(self):
        sections = [
            AssetSection(title="Land", fields=(AssetField("Area", "100"), AssetField("Location", "Jakarta"))),
            AssetSection(title="Car", fields=(AssetField("Plate", "B 1234"),)),
        ]

        text = render_asset_sections_text(sections)

        assert text == (
            "Land\n"
            f"{'Area'.ljust(30)}: 100\n"
            f"{'Location'.ljust(30)}: Jakarta\n"
            "\n"
            "Car\n"
            f"{'Plate'.ljust(30)}: B 1234"
        )

    def test_width_shared_across_sections(self):
        long_key = "k" * 35
        sections = [
            AssetSection(title="A", fields=(AssetField("a", "1"),)),
            AssetSection(title="B", fields=(AssetField(long_key, "2"),)),
        ]

        lines = render_asset_sections_text(sections).splitlines()

        assert lines[1] == "a".ljust(37) + ": 1"
        assert lines[4] == long_key.ljust(37) + ": 2"

    def test_preview_uses_fixed_padding(self):
        sections = [AssetSection(title="Land", fields=(AssetField("Area", "100"),))]

        assert render_asset_sections_preview(sections) == f"\nLand\n\n{'Area'.ljust(25)}: 100\n\n"


class TestSection:
    """Tests for Section data."""

    def test_from_dict_accepts_both_spellings(self):
        snake = Section.from_dict({"title": "T", "key_value_pairs": [{"key": "k", "value": "v"}]})
        camel = Section.from_dict({"title": "T", "keyValuePairs": [{"key": "k", "value": "v"}]})

        assert snake == camel == Section("T", (KeyValuePair("k", "v"),))

    def test_has_content(self):
        assert Section("T", (KeyValuePair("k", "v"),)).has_content
        assert not Section("", (KeyValuePair("k", "v"),)).has_content
        assert not Section("T", ()).has_content
        assert not Section("T", (KeyValuePair("k", " "),)).has_content
