"""
Substitution Planner

Turns resolved template markers plus caller-supplied values into an ordered
list of document mutations.

Two strategies:
- Text substitution: replace-all operations on literal placeholder text.
  Needs no positions; used for variables and asset section blocks.
- Structural tables: insert and fill a 2-column table at each
  [[section:Name]] marker. Every operation after the first is positioned
  against the document as it will be once the earlier operations in the
  batch have been applied.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from gtemplates.document_model import DocumentBody, Table, utf16_len
from gtemplates.errors import UnknownSectionNameError
from gtemplates.markers import SectionTableMarker, VariableType
from gtemplates.mutations import (
    CoordinateTracker,
    DeleteRange,
    InsertTable,
    InsertText,
    MergeCells,
    Mutation,
    RemoveTableBorders,
    ReplaceAllText,
    SetColumnWidth,
    SetParagraphStyle,
    SetTextStyle,
)
from gtemplates.position_mapper import PositionMapper, cell_insertion_index
from gtemplates.sections import (
    ASSET_SECTION_MIN_PADDING,
    AssetSection,
    Section,
    render_asset_sections_text,
)
from gtemplates.snapshot import DocumentSnapshot
from gtemplates.table_layout import TableLayout, layout
from gtemplates.variables import TemplateScan, scan_text
from gtemplates.text_extractor import extract

logger = logging.getLogger(__name__)

DocumentInput = Union[DocumentSnapshot, DocumentBody, Dict[str, Any]]


def _scan(document: DocumentInput) -> TemplateScan:
    if isinstance(document, DocumentSnapshot):
        return scan_text(document.linear_text)
    return scan_text(extract(document))


def _snapshot(document: DocumentInput) -> DocumentSnapshot:
    if isinstance(document, DocumentSnapshot):
        return document
    if isinstance(document, DocumentBody):
        return DocumentSnapshot(
            document_id="", revision_id=None, title="", body=document, linear_text=extract(document)
        )
    return DocumentSnapshot.from_document(document)


# =============================================================================
# Text substitution strategy
# =============================================================================

def placeholder_spellings(name: str, found: Iterable[str] = ()) -> List[str]:
    """
    Every literal spelling of a variable's placeholder.

    Covers the plain and spaced forms, each typed form, and any literal
    spellings actually found in the document.
    """
    spellings = [f"{{{{{name}}}}}", f"{{{{ {name} }}}}"]
    spellings.extend(f"{{{{{name}:{t.value}}}}}" for t in VariableType)
    for literal in found:
        if literal not in spellings:
            spellings.append(literal)
    return spellings


def plan_substitution(
    values: Mapping[str, str],
    asset_sections: Sequence[AssetSection],
    document: DocumentInput,
    min_padding: int = ASSET_SECTION_MIN_PADDING,
) -> List[Mutation]:
    """
    Plan the text-substitution strategy.

    Asset section blocks are replaced first, one operation per distinct
    section name, with the plain-text rendering of all configured asset
    sections. Variables follow, one replace-all per literal spelling.

    Args:
        values: Variable name -> value
        asset_sections: Configured asset sections, in display order
        document: Snapshot, parsed body, or raw document JSON
        min_padding: Minimum key column width for asset section rendering

    Returns:
        Ordered list of ReplaceAllText operations
    """
    scan = _scan(document)
    operations: List[Mutation] = []

    if asset_sections:
        rendered = render_asset_sections_text(asset_sections, min_padding=min_padding)
        seen_blocks = set()
        for block in scan.asset_section_templates:
            if block.section_name in seen_blocks:
                continue
            seen_blocks.add(block.section_name)
            operations.append(ReplaceAllText(find_text=block.raw_block, replace_text=rendered))
    elif scan.asset_section_templates:
        logger.info(
            f"No asset sections supplied; leaving {len(scan.asset_section_templates)} block(s) untouched"
        )

    found_spellings: Dict[str, List[str]] = {}
    for token in scan.variable_tokens:
        found_spellings.setdefault(token.name, []).append(token.raw_placeholder)

    for name, value in values.items():
        for spelling in placeholder_spellings(name, found_spellings.get(name, ())):
            operations.append(ReplaceAllText(find_text=spelling, replace_text=value or ""))

    logger.debug(f"Planned {len(operations)} text substitution operation(s)")
    return operations


def apply_text_operations(text: str, operations: Sequence[Mutation]) -> str:
    """
    Apply replace-all operations to a plain string, in order.

    Mirrors what the document store does with the same operations; other
    operation kinds are ignored.
    """
    for op in operations:
        if not isinstance(op, ReplaceAllText) or not op.find_text:
            continue
        if op.match_case:
            text = text.replace(op.find_text, op.replace_text)
            continue
        lowered = op.find_text.lower()
        haystack = text.lower()
        parts = []
        cursor = 0
        while True:
            found = haystack.find(lowered, cursor)
            if found == -1:
                break
            parts.append(text[cursor:found])
            parts.append(op.replace_text)
            cursor = found + len(op.find_text)
        parts.append(text[cursor:])
        text = "".join(parts)
    return text


# =============================================================================
# Structural table strategy
# =============================================================================

def build_table_fill(
    table: Table,
    table_layout: TableLayout,
    marker_range: Optional[Tuple[int, int]] = None,
) -> List[Mutation]:
    """
    Operations that fill an empty table according to a layout.

    All indices are read from `table` (and `marker_range`) as they stand
    before the first operation; each operation is shifted by the length of
    the text inserted by the operations before it.

    Args:
        table: The empty table as it exists in the document
        table_layout: Layout produced by table_layout.layout()
        marker_range: Marker literal to delete once the table is filled

    Returns:
        Ordered operations: merge title row, per-cell insert and style,
        border removal, column widths, marker deletion

    Raises:
        CellNotFoundError: If the table is smaller than the layout
    """
    tracker = CoordinateTracker()
    operations: List[Mutation] = []

    if table_layout.has_title_row:
        operations.append(
            MergeCells(table_start=table.start_index, row=0, column=0, row_span=1, column_span=2)
        )

    for cell in table_layout.cells:
        anchor = cell_insertion_index(table, cell.row, cell.column)
        if not cell.text:
            continue
        at = tracker.map(anchor)
        end = at + utf16_len(cell.text)
        operations.append(InsertText(at=at, text=cell.text))
        operations.append(SetTextStyle(start_index=at, end_index=end, bold=cell.bold, font_size=cell.font_size))
        if cell.alignment:
            operations.append(SetParagraphStyle(start_index=at, end_index=end, alignment=cell.alignment))
        tracker.record_insert(anchor, utf16_len(cell.text))

    operations.append(
        RemoveTableBorders(
            table_start=table.start_index,
            row_span=table_layout.row_count,
            column_span=table_layout.column_count,
        )
    )
    for column, width in enumerate(table_layout.column_widths):
        operations.append(SetColumnWidth(table_start=table.start_index, column_indices=(column,), width=width))

    if marker_range is not None:
        start, end = marker_range
        operations.append(DeleteRange(start_index=tracker.map(start), end_index=tracker.map(end)))

    return operations


def plan_marker_table(
    marker_start: int,
    marker_end: int,
    table_layout: TableLayout,
) -> List[Mutation]:
    """
    Plan one section table in a single batch.

    The table is inserted at the marker; the cells of the new table are
    predicted from the insertion point, and the marker, pushed back by the
    table, is deleted last.
    """
    insert = InsertTable(at=marker_start, rows=table_layout.row_count, columns=table_layout.column_count)
    geometry = insert.geometry
    fill = build_table_fill(
        geometry.to_table(),
        table_layout,
        marker_range=(marker_start + geometry.size, marker_end + geometry.size),
    )
    return [insert, *fill]


@dataclass
class SkippedSection:
    name: str
    reason: str
    error: Optional[UnknownSectionNameError] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {"name": self.name, "reason": self.reason}
        if self.error is not None:
            result["error"] = self.error.to_dict()
        return result


@dataclass
class SectionTablePlan:
    operations: List[Mutation] = field(default_factory=list)
    rendered: List[str] = field(default_factory=list)
    skipped: List[SkippedSection] = field(default_factory=list)


def select_section(
    marker: SectionTableMarker, sections: Mapping[str, Section]
) -> Tuple[Optional[Section], Optional[SkippedSection]]:
    """Pick the data for a marker, or explain why the marker is skipped."""
    section = sections.get(marker.section_name)
    if section is None:
        error = UnknownSectionNameError(marker.section_name, list(sections))
        logger.warning(f"No section data found for marker '{marker.section_name}', leaving it in place")
        return None, SkippedSection(marker.section_name, "no data supplied", error)
    if not section.has_content:
        logger.warning(f"Skipping section '{marker.section_name}': missing title or empty key/value pairs")
        return None, SkippedSection(marker.section_name, "missing title or empty key/value pairs")
    return section, None


def plan_section_tables(
    sections: Mapping[str, Section],
    document: DocumentInput,
) -> SectionTablePlan:
    """
    Plan the structural table strategy for every [[section:Name]] marker.

    Markers are processed from the last one in the document to the first so
    that operations for one marker never move the indices of the markers
    still to be processed.

    Args:
        sections: Section name -> Section data
        document: Snapshot, parsed body, or raw document JSON

    Returns:
        SectionTablePlan whose `operations` must be applied in order as a
        single batch; `skipped` lists markers left unresolved
    """
    snapshot = _snapshot(document)
    mapper = PositionMapper(snapshot)
    scan = scan_text(snapshot.linear_text)
    plan = SectionTablePlan()

    for marker in reversed(scan.section_markers):
        section, skipped = select_section(marker, sections)
        if skipped is not None:
            plan.skipped.append(skipped)
            continue

        start, end = mapper.map_span(marker.span_start, marker.span_end)
        operations = plan_marker_table(start.document_index, end.document_index, layout(section))
        plan.operations.extend(operations)
        plan.rendered.append(marker.section_name)
        logger.debug(
            f"Planned table for section '{marker.section_name}' at {start.document_index}: "
            f"{len(operations)} operation(s)"
        )

    plan.skipped.reverse()
    plan.rendered.reverse()
    return plan
