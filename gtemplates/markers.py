"""
Template marker tokenizer.

Recognizes three marker grammars over the same linear text:

- Asset section blocks: {{#ASSET_SECTION:Name}} ... {{/#ASSET_SECTION:Name}}
- Section table markers: [[section:Name]]
- Variables: {{name}} or {{name:type}}

Passes run in that order. Each later pass only scans the gaps left by the
earlier ones, so a variable written inside an asset section block never
becomes a top-level variable and no two tokens overlap.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

from gtemplates.errors import MalformedMarkerError

logger = logging.getLogger(__name__)

ASSET_SECTION_PATTERN = re.compile(
    r"\{\{#ASSET_SECTION:([^}]+)\}\}(.*?)\{\{/#ASSET_SECTION:\1\}\}", re.DOTALL
)
ASSET_SECTION_OPEN_PATTERN = re.compile(r"\{\{#ASSET_SECTION:([^}]+)\}\}")
ASSET_SECTION_CLOSE_PATTERN = re.compile(r"\{\{/#ASSET_SECTION:([^}]+)\}\}")
SECTION_MARKER_PATTERN = re.compile(r"\[\[section:([^\]]+)\]\]")
VARIABLE_PATTERN = re.compile(r"\{\{([^}]+)\}\}")

ASSET_SECTION_PREFIXES = ("#ASSET_SECTION:", "/#ASSET_SECTION:")


class VariableType(str, Enum):
    """Value types a variable may declare with a ':type' suffix."""
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    EMAIL = "email"

    @classmethod
    def from_suffix(cls, suffix: Optional[str]) -> "VariableType":
        """Normalize a declared suffix; missing or unknown suffixes are text."""
        if not suffix:
            return cls.TEXT
        try:
            return cls(suffix.lower())
        except ValueError:
            return cls.TEXT


@dataclass(frozen=True)
class Variable:
    name: str
    raw_placeholder: str
    type: VariableType
    span_start: int
    span_end: int
    declared_type: Optional[str] = None


@dataclass(frozen=True)
class AssetSectionBlock:
    section_name: str
    inner_template: str
    raw_block: str
    span_start: int
    span_end: int


@dataclass(frozen=True)
class SectionTableMarker:
    section_name: str
    raw_marker: str
    span_start: int
    span_end: int


Token = Union[Variable, AssetSectionBlock, SectionTableMarker]


def split_variable_content(content: str) -> Tuple[str, Optional[str]]:
    """
    Split marker content on the first ':' into (name, declared type).

    Both halves are trimmed; an empty suffix counts as no suffix.
    """
    name, sep, suffix = content.strip().partition(":")
    suffix = suffix.strip() if sep else ""
    return name.strip(), suffix or None


def _gaps(length: int, spans: Iterable[Tuple[int, int]]) -> List[Tuple[int, int]]:
    """Return the [start, end) ranges of [0, length) not covered by spans."""
    gaps = []
    cursor = 0
    for start, end in sorted(spans):
        if start > cursor:
            gaps.append((cursor, start))
        cursor = max(cursor, end)
    if cursor < length:
        gaps.append((cursor, length))
    return gaps


def find_asset_sections(text: str) -> List[AssetSectionBlock]:
    """Find balanced asset section blocks whose closing name matches the opening one."""
    blocks = []
    for match in ASSET_SECTION_PATTERN.finditer(text):
        blocks.append(
            AssetSectionBlock(
                section_name=match.group(1).strip(),
                inner_template=match.group(2).strip(),
                raw_block=match.group(0),
                span_start=match.start(),
                span_end=match.end(),
            )
        )
    return blocks


def find_section_markers(
    text: str, excluded: Iterable[Tuple[int, int]] = ()
) -> List[SectionTableMarker]:
    """Find [[section:Name]] markers outside the excluded spans."""
    markers = []
    for gap_start, gap_end in _gaps(len(text), excluded):
        for match in SECTION_MARKER_PATTERN.finditer(text, gap_start, gap_end):
            markers.append(
                SectionTableMarker(
                    section_name=match.group(1).strip(),
                    raw_marker=match.group(0),
                    span_start=match.start(),
                    span_end=match.end(),
                )
            )
    return markers


def find_variables(text: str, excluded: Iterable[Tuple[int, int]] = ()) -> List[Variable]:
    """Find {{name}} / {{name:type}} variables outside the excluded spans."""
    variables = []
    for gap_start, gap_end in _gaps(len(text), excluded):
        for match in VARIABLE_PATTERN.finditer(text, gap_start, gap_end):
            content = match.group(1).strip()

            # Leftover from an unterminated or mismatched asset section
            if content.startswith(ASSET_SECTION_PREFIXES):
                logger.debug(f"Skipping asset section tag at {match.start()}: {match.group(0)!r}")
                continue

            name, declared_type = split_variable_content(content)
            if not name:
                logger.debug(f"Skipping nameless marker at {match.start()}: {match.group(0)!r}")
                continue

            variables.append(
                Variable(
                    name=name,
                    raw_placeholder=match.group(0),
                    type=VariableType.from_suffix(declared_type),
                    span_start=match.start(),
                    span_end=match.end(),
                    declared_type=declared_type,
                )
            )
    return variables


def tokenize(text: str) -> List[Token]:
    """
    Tokenize linear text into markers of all three grammars.

    Args:
        text: Linear text of a document

    Returns:
        Tokens ordered by span start
    """
    blocks = find_asset_sections(text)
    block_spans = [(b.span_start, b.span_end) for b in blocks]

    markers = find_section_markers(text, block_spans)
    marker_spans = [(m.span_start, m.span_end) for m in markers]

    variables = find_variables(text, block_spans + marker_spans)

    tokens: List[Token] = [*blocks, *markers, *variables]
    tokens.sort(key=lambda t: t.span_start)
    logger.debug(
        f"Tokenized {len(text)} chars: {len(blocks)} asset section(s), "
        f"{len(markers)} section marker(s), {len(variables)} variable(s)"
    )
    return tokens


def find_malformed_markers(text: str) -> List[MalformedMarkerError]:
    """
    Report asset section tags that are not part of a balanced block.

    These are left in the document as plain text; the returned errors are
    diagnostics only and are never raised.
    """
    block_spans = [(b.span_start, b.span_end) for b in find_asset_sections(text)]
    diagnostics = []
    for gap_start, gap_end in _gaps(len(text), block_spans):
        for match in ASSET_SECTION_OPEN_PATTERN.finditer(text, gap_start, gap_end):
            diagnostics.append(
                MalformedMarkerError(match.group(1).strip(), match.start(), "unterminated")
            )
        for match in ASSET_SECTION_CLOSE_PATTERN.finditer(text, gap_start, gap_end):
            diagnostics.append(
                MalformedMarkerError(match.group(1).strip(), match.start(), "a closing tag without a matching opening tag")
            )

    diagnostics.sort(key=lambda d: d.position)
    for diagnostic in diagnostics:
        logger.warning(f"Malformed asset section marker: {diagnostic}")
    return diagnostics
