"""
Document mutation operations.

Typed operations produced by the substitution planner, each able to build
its Google Docs batchUpdate request and to report how far it shifts the
indices that follow it. The CoordinateTracker turns indices read from one
snapshot into indices valid after a sequence of earlier operations.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple

from gtemplates.document_model import Paragraph, Table, TableCell, TableRow, TextRun, utf16_len

logger = logging.getLogger(__name__)

ZERO_BORDER = {
    "width": {"magnitude": 0, "unit": "PT"},
    "dashStyle": "SOLID",
    "color": {},
}
BORDER_FIELDS = ("borderTop", "borderBottom", "borderLeft", "borderRight")


# =============================================================================
# Request builders
# =============================================================================

def create_insert_text_request(index: int, text: str) -> Dict[str, Any]:
    """
    Create an insertText request for Google Docs API.

    Args:
        index: Position to insert text
        text: Text to insert

    Returns:
        Dictionary representing the insertText request
    """
    return {
        'insertText': {
            'location': {'index': index},
            'text': text
        }
    }


def create_delete_range_request(start_index: int, end_index: int) -> Dict[str, Any]:
    """Create a deleteContentRange request for Google Docs API."""
    return {
        'deleteContentRange': {
            'range': {
                'startIndex': start_index,
                'endIndex': end_index
            }
        }
    }


def create_insert_table_request(index: int, rows: int, columns: int) -> Dict[str, Any]:
    """Create an insertTable request for Google Docs API."""
    return {
        'insertTable': {
            'location': {'index': index},
            'rows': rows,
            'columns': columns
        }
    }


def create_find_replace_request(
    find_text: str,
    replace_text: str,
    match_case: bool = True
) -> Dict[str, Any]:
    """
    Create a replaceAllText request for Google Docs API.

    Matching is case-sensitive by default because variable names are
    deduplicated case-sensitively; {{Name}} and {{name}} are different
    variables and must not replace each other.
    """
    return {
        'replaceAllText': {
            'containsText': {
                'text': find_text,
                'matchCase': match_case
            },
            'replaceText': replace_text
        }
    }


def _table_cell_location(table_start: int, row: int, column: int) -> Dict[str, Any]:
    return {
        'tableStartLocation': {'index': table_start},
        'rowIndex': row,
        'columnIndex': column
    }


def create_merge_cells_request(
    table_start: int, row: int, column: int, row_span: int, column_span: int
) -> Dict[str, Any]:
    """Create a mergeTableCells request for Google Docs API."""
    return {
        'mergeTableCells': {
            'tableRange': {
                'tableCellLocation': _table_cell_location(table_start, row, column),
                'rowSpan': row_span,
                'columnSpan': column_span
            }
        }
    }


def create_format_text_request(
    start_index: int,
    end_index: int,
    bold: bool = None,
    font_size: int = None,
) -> Optional[Dict[str, Any]]:
    """
    Create an updateTextStyle request for Google Docs API.

    Returns:
        Dictionary representing the updateTextStyle request, or None if no styles provided
    """
    text_style = {}
    fields = []
    if bold is not None:
        text_style['bold'] = bold
        fields.append('bold')
    if font_size is not None:
        text_style['fontSize'] = {'magnitude': font_size, 'unit': 'PT'}
        fields.append('fontSize')

    if not text_style:
        return None

    return {
        'updateTextStyle': {
            'range': {
                'startIndex': start_index,
                'endIndex': end_index
            },
            'textStyle': text_style,
            'fields': ','.join(fields)
        }
    }


def create_paragraph_style_request(start_index: int, end_index: int, alignment: str) -> Dict[str, Any]:
    """Create an updateParagraphStyle request setting alignment."""
    return {
        'updateParagraphStyle': {
            'range': {
                'startIndex': start_index,
                'endIndex': end_index
            },
            'paragraphStyle': {'alignment': alignment},
            'fields': 'alignment'
        }
    }


def create_remove_borders_request(
    table_start: int, row_span: int, column_span: int
) -> Dict[str, Any]:
    """Create an updateTableCellStyle request that zeroes every border in a table range."""
    return {
        'updateTableCellStyle': {
            'tableRange': {
                'tableCellLocation': _table_cell_location(table_start, 0, 0),
                'rowSpan': row_span,
                'columnSpan': column_span
            },
            'tableCellStyle': {name: dict(ZERO_BORDER) for name in BORDER_FIELDS},
            'fields': ','.join(BORDER_FIELDS)
        }
    }


def create_column_width_request(
    table_start: int, column_indices: Sequence[int], width: int
) -> Dict[str, Any]:
    """Create an updateTableColumnProperties request fixing column widths in points."""
    return {
        'updateTableColumnProperties': {
            'tableStartLocation': {'index': table_start},
            'columnIndices': list(column_indices),
            'tableColumnProperties': {
                'widthType': 'FIXED_WIDTH',
                'width': {'magnitude': width, 'unit': 'PT'}
            },
            'fields': 'widthType,width'
        }
    }


# =============================================================================
# Predicted table geometry
# =============================================================================

@dataclass(frozen=True)
class TableGeometry:
    """
    Index layout of a freshly inserted, empty table.

    Inserting a table at index i adds a paragraph break at i, the table
    start slot, then per row one row slot and per cell one cell slot plus
    an empty paragraph, and finally the table end slot.
    """
    insertion_index: int
    rows: int
    columns: int

    @property
    def table_start(self) -> int:
        return self.insertion_index + 1

    @property
    def row_size(self) -> int:
        return 1 + 2 * self.columns

    @property
    def table_end(self) -> int:
        return self.table_start + 2 + self.rows * self.row_size

    @property
    def size(self) -> int:
        """Number of index slots added in front of the insertion point's content."""
        return self.table_end - self.insertion_index

    def row_start(self, row: int) -> int:
        return self.table_start + 1 + row * self.row_size

    def cell_start(self, row: int, column: int) -> int:
        return self.row_start(row) + 1 + 2 * column

    def to_table(self) -> Table:
        """Build the Table node this insertion is expected to produce."""
        rows = []
        for r in range(self.rows):
            cells = []
            for c in range(self.columns):
                start = self.cell_start(r, c)
                paragraph = Paragraph(
                    start_index=start + 1,
                    end_index=start + 2,
                    elements=(TextRun(start + 1, start + 2, "\n"),),
                )
                cells.append(TableCell(start_index=start, end_index=start + 2, content=(paragraph,)))
            row_start = self.row_start(r)
            rows.append(TableRow(row_start, row_start + self.row_size, tuple(cells)))
        return Table(start_index=self.table_start, end_index=self.table_end, rows=tuple(rows))


# =============================================================================
# Operations
# =============================================================================

@dataclass(frozen=True)
class Mutation:
    """Base class for a single document mutation."""
    type: ClassVar[str] = "mutation"

    @property
    def index(self) -> int:
        """Document index where this operation's shift takes effect."""
        return 0

    @property
    def position_shift(self) -> int:
        """Net change in length of the document caused by this operation."""
        return 0

    def to_request(self) -> Dict[str, Any]:
        raise NotImplementedError

    def describe(self) -> str:
        return self.type


@dataclass(frozen=True)
class DeleteRange(Mutation):
    type: ClassVar[str] = "delete_range"
    start_index: int = 0
    end_index: int = 0

    @property
    def index(self) -> int:
        return self.start_index

    @property
    def position_shift(self) -> int:
        return -(self.end_index - self.start_index)

    def to_request(self) -> Dict[str, Any]:
        return create_delete_range_request(self.start_index, self.end_index)

    def describe(self) -> str:
        return f"delete {self.start_index}-{self.end_index}"


@dataclass(frozen=True)
class InsertText(Mutation):
    type: ClassVar[str] = "insert_text"
    at: int = 1
    text: str = ""

    @property
    def index(self) -> int:
        return self.at

    @property
    def position_shift(self) -> int:
        return utf16_len(self.text)

    def to_request(self) -> Dict[str, Any]:
        return create_insert_text_request(self.at, self.text)

    def describe(self) -> str:
        preview = self.text[:20] + "..." if len(self.text) > 20 else self.text
        return f"insert '{preview}' at {self.at}"


@dataclass(frozen=True)
class InsertTable(Mutation):
    type: ClassVar[str] = "insert_table"
    at: int = 1
    rows: int = 1
    columns: int = 2

    @property
    def index(self) -> int:
        return self.at

    @property
    def geometry(self) -> TableGeometry:
        return TableGeometry(self.at, self.rows, self.columns)

    @property
    def position_shift(self) -> int:
        return self.geometry.size

    def to_request(self) -> Dict[str, Any]:
        return create_insert_table_request(self.at, self.rows, self.columns)

    def describe(self) -> str:
        return f"insert {self.rows}x{self.columns} table at {self.at}"


@dataclass(frozen=True)
class MergeCells(Mutation):
    type: ClassVar[str] = "merge_cells"
    table_start: int = 0
    row: int = 0
    column: int = 0
    row_span: int = 1
    column_span: int = 2

    def to_request(self) -> Dict[str, Any]:
        return create_merge_cells_request(
            self.table_start, self.row, self.column, self.row_span, self.column_span
        )

    def describe(self) -> str:
        return f"merge cells ({self.row}, {self.column}) span {self.row_span}x{self.column_span}"


@dataclass(frozen=True)
class SetTextStyle(Mutation):
    type: ClassVar[str] = "set_text_style"
    start_index: int = 0
    end_index: int = 0
    bold: Optional[bool] = None
    font_size: Optional[int] = None

    def to_request(self) -> Dict[str, Any]:
        return create_format_text_request(
            self.start_index, self.end_index, bold=self.bold, font_size=self.font_size
        )

    def describe(self) -> str:
        return f"style {self.start_index}-{self.end_index} bold={self.bold} size={self.font_size}"


@dataclass(frozen=True)
class SetParagraphStyle(Mutation):
    type: ClassVar[str] = "set_paragraph_style"
    start_index: int = 0
    end_index: int = 0
    alignment: str = "START"

    def to_request(self) -> Dict[str, Any]:
        return create_paragraph_style_request(self.start_index, self.end_index, self.alignment)

    def describe(self) -> str:
        return f"align {self.start_index}-{self.end_index} {self.alignment}"


@dataclass(frozen=True)
class RemoveTableBorders(Mutation):
    type: ClassVar[str] = "set_cell_style"
    table_start: int = 0
    row_span: int = 1
    column_span: int = 2

    def to_request(self) -> Dict[str, Any]:
        return create_remove_borders_request(self.table_start, self.row_span, self.column_span)

    def describe(self) -> str:
        return f"remove borders of table at {self.table_start}"


@dataclass(frozen=True)
class SetColumnWidth(Mutation):
    type: ClassVar[str] = "set_column_properties"
    table_start: int = 0
    column_indices: Tuple[int, ...] = ()
    width: int = 0

    def to_request(self) -> Dict[str, Any]:
        return create_column_width_request(self.table_start, self.column_indices, self.width)

    def describe(self) -> str:
        return f"set columns {list(self.column_indices)} width {self.width}pt"


@dataclass(frozen=True)
class ReplaceAllText(Mutation):
    """Replace every occurrence of a literal; the store locates the text itself."""
    type: ClassVar[str] = "replace_all_text"
    find_text: str = ""
    replace_text: str = ""
    match_case: bool = True

    def to_request(self) -> Dict[str, Any]:
        return create_find_replace_request(self.find_text, self.replace_text, self.match_case)

    def describe(self) -> str:
        return f"replace all '{self.find_text}'"


def build_requests(operations: Sequence[Mutation]) -> List[Dict[str, Any]]:
    """Build batchUpdate requests in operation order."""
    return [op.to_request() for op in operations]


# =============================================================================
# Coordinate tracking
# =============================================================================

@dataclass
class CoordinateTracker:
    """
    Maps indices from a snapshot to indices valid after queued insertions.

    Insertions are recorded in snapshot coordinates, with lengths in UTF-16
    code units. An insertion at q shifts every index >= q.
    """
    _inserts: List[Tuple[int, int]] = field(default_factory=list)

    def record_insert(self, snapshot_index: int, length: int) -> None:
        if length:
            self._inserts.append((snapshot_index, length))

    def map(self, snapshot_index: int) -> int:
        """Current index of a position read from the snapshot."""
        shift = 0
        for at, length in self._inserts:
            if at <= snapshot_index:
                shift += length
        return snapshot_index + shift


def total_position_shift(operations: Sequence[Mutation]) -> int:
    """Cumulative length change of a batch."""
    return sum(op.position_shift for op in operations)
