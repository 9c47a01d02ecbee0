"""
Text extraction for Google Docs bodies.

Flattens a document body into a single reading-order string. When origins
are tracked, every character also records the document index it was read
from, so positions found in the flat text can be mapped back to the
document's own coordinate space without modelling structural overhead.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from gtemplates.document_model import (
    DocumentBody,
    Paragraph,
    Table,
    TableOfContents,
    TextRun,
    parse_body,
    utf16_len,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CellCoordinate:
    table_start: int
    row: int
    column: int


@dataclass(frozen=True)
class CharOrigin:
    """Where one extracted character came from."""
    document_index: int
    run_start: int
    cell: Optional[CellCoordinate] = None


@dataclass(frozen=True)
class LinearText:
    """
    Immutable flat text of one document fetch.

    Attributes:
        text: Concatenated text of all text runs in reading order
        origins: Per-character origins (empty when not tracked)
        revision_id: Revision of the snapshot the text was extracted from
    """
    text: str
    origins: tuple = ()
    revision_id: Optional[str] = None

    def __len__(self) -> int:
        return len(self.text)

    @property
    def has_origins(self) -> bool:
        return len(self.origins) == len(self.text) and bool(self.text)


def extract(
    document_body: Union[DocumentBody, dict[str, Any]],
    revision_id: Optional[str] = None,
    track_origins: bool = True,
) -> LinearText:
    """
    Extract the linear text of a document body.

    Paragraph text runs are appended in order; inline elements such as page
    breaks add nothing. Tables are walked row by row, cells left to right,
    with each cell's paragraphs (and any nested table) appended in turn.

    Args:
        document_body: Parsed DocumentBody or raw document/body JSON
        revision_id: Revision of the snapshot, copied onto the result
        track_origins: Record per-character origins for position mapping

    Returns:
        LinearText for the body
    """
    if not isinstance(document_body, DocumentBody):
        if revision_id is None:
            revision_id = document_body.get("revisionId")
        document_body = parse_body(document_body)

    parts: list[str] = []
    origins: list[CharOrigin] = []

    def visit(elements, cell: Optional[CellCoordinate]) -> None:
        for element in elements:
            if isinstance(element, Paragraph):
                for para_element in element.elements:
                    if not isinstance(para_element, TextRun) or not para_element.content:
                        continue
                    parts.append(para_element.content)
                    if track_origins:
                        offset = 0
                        for ch in para_element.content:
                            origins.append(
                                CharOrigin(para_element.start_index + offset, para_element.start_index, cell)
                            )
                            offset += utf16_len(ch)
            elif isinstance(element, Table):
                for row_idx, row in enumerate(element.rows):
                    for col_idx, table_cell in enumerate(row.cells):
                        visit(
                            table_cell.content,
                            CellCoordinate(element.start_index, row_idx, col_idx),
                        )
            elif isinstance(element, TableOfContents):
                visit(element.content, cell)

    visit(document_body.content, None)

    text = "".join(parts)
    logger.debug(f"Extracted {len(text)} characters (revision={revision_id})")
    return LinearText(
        text=text,
        origins=tuple(origins) if track_origins else (),
        revision_id=revision_id,
    )


def extract_text(document_body: Union[DocumentBody, dict[str, Any]]) -> str:
    """Extract only the flat text of a document body."""
    return extract(document_body, track_origins=False).text
