"""
Two-column table layout for sections.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from gtemplates.sections import Section

logger = logging.getLogger(__name__)

TITLE_FONT_SIZE = 14
BODY_FONT_SIZE = 12
COLUMN_WIDTHS = (200, 300)


@dataclass(frozen=True)
class CellPlan:
    row: int
    column: int
    text: str
    bold: bool
    font_size: int
    column_span: int = 1
    alignment: Optional[str] = None


@dataclass(frozen=True)
class TableLayout:
    row_count: int
    column_count: int
    cells: Tuple[CellPlan, ...]
    column_widths: Tuple[int, ...] = COLUMN_WIDTHS

    @property
    def has_title_row(self) -> bool:
        return any(c.column_span > 1 for c in self.cells if c.row == 0)


def layout(
    section: Section,
    title_font_size: int = TITLE_FONT_SIZE,
    body_font_size: int = BODY_FONT_SIZE,
    value_prefix: str = "",
) -> TableLayout:
    """
    Lay out a section as a 2-column table.

    Row 0 is the title merged across both columns (omitted when the title
    is empty). Each following row holds one key (bold) and its value
    (regular), in the order the pairs were supplied.

    Args:
        section: Section to lay out
        title_font_size: Point size for the title
        body_font_size: Point size for keys and values
        value_prefix: Text put in front of each value, e.g. ': '

    Returns:
        TableLayout with one CellPlan per cell to fill
    """
    cells: List[CellPlan] = []
    row = 0

    if section.title:
        cells.append(
            CellPlan(
                row=0,
                column=0,
                text=section.title,
                bold=True,
                font_size=title_font_size,
                column_span=2,
                alignment="CENTER",
            )
        )
        row = 1

    for pair in section.key_value_pairs:
        cells.append(CellPlan(row=row, column=0, text=pair.key, bold=True, font_size=body_font_size))
        cells.append(
            CellPlan(row=row, column=1, text=f"{value_prefix}{pair.value}", bold=False, font_size=body_font_size)
        )
        row += 1

    logger.debug(f"Laid out section '{section.title}' as {row}x2 table")
    return TableLayout(row_count=row, column_count=2, cells=tuple(cells))
