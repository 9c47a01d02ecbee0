"""
Mapping between linear text positions and document indices.

The Docs API counts structural slots (paragraph terminators, table, row and
cell boundaries) that never appear in the linear text, so a linear text
offset is not a document index. Instead of modelling that overhead, every
extracted character remembers the native start index of its text run, and
the mapper reads the index straight off that record.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

from gtemplates.document_model import Table, utf16_len
from gtemplates.errors import CellNotFoundError, StaleSnapshotError
from gtemplates.snapshot import DocumentSnapshot
from gtemplates.text_extractor import LinearText

logger = logging.getLogger(__name__)

# Window around an insertion point in which a table counts as the inserted one
TABLE_SEARCH_BEFORE = 5
TABLE_SEARCH_AFTER = 50


@dataclass(frozen=True)
class StructuralAnchor:
    """A position in the document's own index space, tied to a revision."""
    document_index: int
    revision_id: Optional[str] = None

    def shifted(self, delta: int) -> "StructuralAnchor":
        return replace(self, document_index=self.document_index + delta)


def map_to_document_coordinate(span_start: int, linear_text: LinearText) -> StructuralAnchor:
    """
    Map a linear text offset to a document index using the extraction trace.

    Raises:
        StaleSnapshotError: If the offset has no recorded origin
    """
    if not linear_text.has_origins or not 0 <= span_start < len(linear_text.origins):
        raise StaleSnapshotError(linear_text.revision_id, linear_text.revision_id, span_start)
    origin = linear_text.origins[span_start]
    return StructuralAnchor(origin.document_index, linear_text.revision_id)


def map_span_to_document_range(
    span_start: int, span_end: int, linear_text: LinearText
) -> Tuple[StructuralAnchor, StructuralAnchor]:
    """Map a half-open linear text span to a half-open document range."""
    start = map_to_document_coordinate(span_start, linear_text)
    if span_end <= span_start:
        return start, start
    last = map_to_document_coordinate(span_end - 1, linear_text)
    return start, last.shifted(utf16_len(linear_text.text[span_end - 1]))


def cell_insertion_index(table: Table, row: int, column: int) -> int:
    """
    Document index for inserting text inside a table cell.

    Returns the cell's first paragraph start index + 1, which lands inside
    the paragraph rather than in front of it.

    Raises:
        CellNotFoundError: If (row, column) is outside the table
    """
    if not 0 <= row < table.row_count:
        raise CellNotFoundError(row, column, table.row_count, table.column_count)
    cells = table.rows[row].cells
    if not 0 <= column < len(cells):
        raise CellNotFoundError(row, column, table.row_count, len(cells))

    cell = cells[column]
    paragraphs = cell.paragraphs
    if paragraphs:
        return paragraphs[0].start_index + 1

    # No paragraph reported: insert just inside the cell boundary
    logger.debug(f"Cell ({row}, {column}) has no paragraph, using cell start {cell.start_index}")
    return cell.start_index + 1


def find_table_at_index(tables: Sequence[Table], insertion_index: int) -> Optional[int]:
    """
    Find the position in `tables` of the table inserted at `insertion_index`.

    Prefers an exact start match, then the first table starting between
    TABLE_SEARCH_BEFORE before and TABLE_SEARCH_AFTER after the insertion
    point, then the first table starting at or after it. Tables that start
    further back were already in the document and are never picked.

    Returns:
        Index into `tables`, or None if no table qualifies
    """
    for idx, table in enumerate(tables):
        if table.start_index == insertion_index:
            return idx

    low = insertion_index - TABLE_SEARCH_BEFORE
    high = insertion_index + TABLE_SEARCH_AFTER
    for idx, table in enumerate(tables):
        if low <= table.start_index <= high:
            return idx

    for idx, table in enumerate(tables):
        if table.start_index >= insertion_index:
            logger.warning(
                f"No table near index {insertion_index}, using the next table at {table.start_index}"
            )
            return idx

    return None


class PositionMapper:
    """
    Resolves anchors against one document snapshot.

    Any trace or table taken from a different revision is rejected with
    StaleSnapshotError; callers must re-fetch and re-extract.
    """

    def __init__(self, snapshot: DocumentSnapshot):
        self.snapshot = snapshot

    @property
    def revision_id(self) -> Optional[str]:
        return self.snapshot.revision_id

    def _check_revision(self, linear_text: LinearText, index: Optional[int] = None) -> None:
        if linear_text.revision_id != self.snapshot.revision_id:
            raise StaleSnapshotError(self.snapshot.revision_id, linear_text.revision_id, index)

    def map_to_document_coordinate(
        self, span_start: int, linear_text: Optional[LinearText] = None
    ) -> StructuralAnchor:
        """Map a linear text offset to a document anchor for this snapshot."""
        linear_text = linear_text or self.snapshot.linear_text
        self._check_revision(linear_text, span_start)
        return map_to_document_coordinate(span_start, linear_text)

    def map_span(
        self, span_start: int, span_end: int, linear_text: Optional[LinearText] = None
    ) -> Tuple[StructuralAnchor, StructuralAnchor]:
        """Map a half-open linear text span to a half-open anchor range."""
        linear_text = linear_text or self.snapshot.linear_text
        self._check_revision(linear_text, span_start)
        return map_span_to_document_range(span_start, span_end, linear_text)

    def cell_insertion_anchor(self, table: Table, row: int, column: int) -> StructuralAnchor:
        """Anchor for inserting text inside cell (row, column) of `table`."""
        return StructuralAnchor(cell_insertion_index(table, row, column), self.revision_id)

    def table_at(self, insertion_index: int) -> Optional[Table]:
        """The table in this snapshot that was inserted at `insertion_index`."""
        tables = self.snapshot.body.tables
        idx = find_table_at_index(tables, insertion_index)
        return tables[idx] if idx is not None else None
