"""
Asset section and section-table data.

Asset sections are user-entered blocks of a title plus ordered key/value
fields, rendered into {{#ASSET_SECTION:...}} blocks as aligned plain text.
Sections are the simpler title + key/value data used to build tables at
[[section:Name]] markers.
"""
import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List

from gtemplates.markers import VARIABLE_PATTERN

logger = logging.getLogger(__name__)

# Width the key column is padded to before the colon
ASSET_SECTION_MIN_PADDING = 30
PREVIEW_MIN_PADDING = 25
KEY_MARGIN = 2

DEFAULT_ASSET_TITLE = "Tanah dan Bangunan Rumah Tinggal"
DEFAULT_ASSET_KEYS = ("Tanah", "Bangunan", "Lokasi/Alamat Aset", "Kepemilikan Aset")


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class AssetField:
    key: str
    value: str = ""
    id: str = field(default_factory=lambda: _new_id("field"))


@dataclass(frozen=True)
class AssetSection:
    title: str
    fields: tuple = ()
    id: str = field(default_factory=lambda: _new_id("asset"))

    def with_title(self, title: str) -> "AssetSection":
        return replace(self, title=title)

    def with_fields(self, fields: Iterable[AssetField]) -> "AssetSection":
        return replace(self, fields=tuple(fields))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssetSection":
        fields = tuple(
            AssetField(
                key=f.get("key", ""),
                value=f.get("value", ""),
                **({"id": f["id"]} if f.get("id") else {}),
            )
            for f in data.get("fields", [])
        )
        kwargs = {"id": data["id"]} if data.get("id") else {}
        return cls(title=data.get("title", ""), fields=fields, **kwargs)


@dataclass(frozen=True)
class KeyValuePair:
    key: str
    value: str = ""


@dataclass(frozen=True)
class Section:
    title: str
    key_value_pairs: tuple = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Section":
        pairs = data.get("key_value_pairs", data.get("keyValuePairs", []))
        return cls(
            title=data.get("title", ""),
            key_value_pairs=tuple(KeyValuePair(p.get("key", ""), p.get("value", "")) for p in pairs),
        )

    @property
    def has_content(self) -> bool:
        """True if the section has a title and at least one complete pair."""
        return bool(self.title.strip()) and any(
            p.key.strip() and p.value.strip() for p in self.key_value_pairs
        )


def create_default_asset_section() -> AssetSection:
    """Create the default property asset section with empty values."""
    return AssetSection(
        title=DEFAULT_ASSET_TITLE,
        fields=tuple(AssetField(key=key) for key in DEFAULT_ASSET_KEYS),
    )


def validate_asset_section(section: AssetSection) -> List[str]:
    """
    Validate an asset section for rendering.

    Validation is advisory: callers may still render a section with errors.

    Returns:
        List of human-readable problems (empty when valid)
    """
    errors = []
    if not section.title.strip():
        errors.append("Section title is required")
    if not section.fields:
        errors.append("At least one field is required")
    for index, asset_field in enumerate(section.fields, start=1):
        if not asset_field.key.strip():
            errors.append(f"Field {index}: Key is required")
        if not asset_field.value.strip():
            errors.append(f"Field {index}: Value is required")
    return errors


def parse_template_fields(template: str) -> List[str]:
    """Return the field names used in an asset section's inner template, first-seen order, no duplicates."""
    fields: List[str] = []
    for match in VARIABLE_PATTERN.finditer(template):
        name = match.group(1).strip()
        if name not in fields:
            fields.append(name)
    return fields


def key_padding(keys: Iterable[str], min_padding: int, margin: int = KEY_MARGIN) -> int:
    """Column width for keys: max(min_padding, longest key + margin)."""
    longest = max((len(k) for k in keys), default=0)
    return max(min_padding, longest + margin)


def render_asset_sections_text(
    sections: Iterable[AssetSection],
    min_padding: int = ASSET_SECTION_MIN_PADDING,
    margin: int = KEY_MARGIN,
) -> str:
    """
    Render asset sections as column-aligned plain text.

    Each section contributes its title line followed by one 'key : value'
    line per field, keys padded to a shared width so the colons line up.
    """
    sections = list(sections)
    width = key_padding(
        (f.key for s in sections for f in s.fields), min_padding, margin
    )

    blocks = []
    for section in sections:
        lines = []
        if section.title:
            lines.append(section.title)
        lines.extend(f"{f.key.ljust(width)}: {f.value}" for f in section.fields)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def render_asset_sections_preview(sections: Iterable[AssetSection]) -> str:
    """Render asset sections for a quick text preview, keys padded to a fixed width."""
    result = []
    for section in sections:
        if section.title:
            result.append(f"\n{section.title}\n\n")
        for asset_field in section.fields:
            result.append(f"{asset_field.key.ljust(PREVIEW_MIN_PADDING)}: {asset_field.value}\n")
        result.append("\n")
    return "".join(result)
