"""
Google Docs Document Model

Converts the raw JSON returned by the Docs API into a small closed set of
node types. Every node keeps the native start/end index the API reported,
which is what the position mapper relies on. Element kinds outside the
known set raise DocumentStructureError instead of being dropped.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from gtemplates.errors import DocumentStructureError

logger = logging.getLogger(__name__)

# Paragraph elements that occupy index slots but contribute no text
INLINE_ELEMENT_KINDS = (
    "pageBreak",
    "columnBreak",
    "inlineObjectElement",
    "horizontalRule",
    "footnoteReference",
    "autoText",
    "equation",
    "person",
    "richLink",
)

# Keys on raw elements that are bookkeeping, not a node kind
_INDEX_KEYS = {"startIndex", "endIndex"}


def utf16_len(text: str) -> int:
    """Length of text in UTF-16 code units, the unit Docs API indices count in."""
    return len(text.encode("utf-16-le")) // 2


@dataclass(frozen=True)
class TextRun:
    start_index: int
    end_index: int
    content: str
    text_style: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class InlineElement:
    kind: str
    start_index: int
    end_index: int


ParagraphElement = Union[TextRun, InlineElement]


@dataclass(frozen=True)
class Paragraph:
    start_index: int
    end_index: int
    elements: tuple = ()
    named_style: str = "NORMAL_TEXT"

    @property
    def text(self) -> str:
        return "".join(e.content for e in self.elements if isinstance(e, TextRun))


@dataclass(frozen=True)
class TableCell:
    start_index: int
    end_index: int
    content: tuple = ()
    row_span: int = 1
    column_span: int = 1

    @property
    def paragraphs(self) -> list[Paragraph]:
        return [e for e in self.content if isinstance(e, Paragraph)]

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.paragraphs)


@dataclass(frozen=True)
class TableRow:
    start_index: int
    end_index: int
    cells: tuple = ()


@dataclass(frozen=True)
class Table:
    start_index: int
    end_index: int
    rows: tuple = ()

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.rows[0].cells) if self.rows else 0


@dataclass(frozen=True)
class SectionBreak:
    start_index: int
    end_index: int


@dataclass(frozen=True)
class TableOfContents:
    start_index: int
    end_index: int
    content: tuple = ()


StructuralElement = Union[Paragraph, Table, SectionBreak, TableOfContents]


@dataclass(frozen=True)
class DocumentBody:
    content: tuple = ()

    @property
    def end_index(self) -> int:
        return self.content[-1].end_index if self.content else 1

    @property
    def tables(self) -> list[Table]:
        return [e for e in self.content if isinstance(e, Table)]


def get_body(doc_data: dict[str, Any], tab_id: Optional[str] = None) -> dict[str, Any]:
    """
    Get the raw body for a document, honouring multi-tab documents.

    Documents fetched with includeTabsContent=True keep their bodies under
    tabs[].documentTab.body; legacy responses keep a root 'body'. If the
    input already looks like a body (has 'content'), it is returned as is.
    """

    def find_tab_recursive(tabs, target_id):
        for tab in tabs:
            if tab.get("tabProperties", {}).get("tabId") == target_id:
                return tab.get("documentTab", {}).get("body", {})
            found = find_tab_recursive(tab.get("childTabs", []), target_id)
            if found is not None:
                return found
        return None

    if "content" in doc_data and "body" not in doc_data:
        return doc_data

    tabs = doc_data.get("tabs", [])
    if tab_id is not None and tabs:
        body = find_tab_recursive(tabs, tab_id)
        if body is not None:
            return body
        logger.warning(f"Tab '{tab_id}' not found in document, using default body")

    if tabs:
        return tabs[0].get("documentTab", {}).get("body", {})

    return doc_data.get("body", {})


def parse_body(doc_data: dict[str, Any], tab_id: Optional[str] = None) -> DocumentBody:
    """
    Parse a document (or a bare body) into a DocumentBody.

    Args:
        doc_data: Raw document or body data from the Google Docs API
        tab_id: Optional tab ID for multi-tab documents

    Returns:
        DocumentBody with typed structural elements in reading order

    Raises:
        DocumentStructureError: If an unrecognized element kind is found
    """
    body = get_body(doc_data, tab_id)
    return DocumentBody(
        content=tuple(_parse_structural_element(e) for e in body.get("content", []))
    )


def _element_kind(element: dict[str, Any]) -> str:
    kinds = [k for k in element if k not in _INDEX_KEYS]
    return kinds[0] if kinds else "<empty>"


def _parse_structural_element(element: dict[str, Any]) -> StructuralElement:
    start = element.get("startIndex", 0)
    end = element.get("endIndex", start)

    if "paragraph" in element:
        return _parse_paragraph(element["paragraph"], start, end)

    if "table" in element:
        return _parse_table(element["table"], start, end)

    if "sectionBreak" in element:
        return SectionBreak(start_index=start, end_index=end)

    if "tableOfContents" in element:
        toc = element["tableOfContents"]
        return TableOfContents(
            start_index=start,
            end_index=end,
            content=tuple(_parse_structural_element(e) for e in toc.get("content", [])),
        )

    raise DocumentStructureError(_element_kind(element), start)


def _parse_paragraph(paragraph: dict[str, Any], start: int, end: int) -> Paragraph:
    elements = []
    for para_element in paragraph.get("elements", []):
        pe_start = para_element.get("startIndex", start)
        pe_end = para_element.get("endIndex", pe_start)

        if "textRun" in para_element:
            text_run = para_element["textRun"]
            content = text_run.get("content", "")
            elements.append(
                TextRun(
                    start_index=pe_start,
                    end_index=para_element.get("endIndex", pe_start + utf16_len(content)),
                    content=content,
                    text_style=text_run.get("textStyle", {}),
                )
            )
            continue

        kind = next((k for k in INLINE_ELEMENT_KINDS if k in para_element), None)
        if kind is None:
            raise DocumentStructureError(_element_kind(para_element), pe_start)
        elements.append(InlineElement(kind=kind, start_index=pe_start, end_index=pe_end))

    style = paragraph.get("paragraphStyle", {})
    return Paragraph(
        start_index=start,
        end_index=end,
        elements=tuple(elements),
        named_style=style.get("namedStyleType", "NORMAL_TEXT"),
    )


def _parse_table(table: dict[str, Any], start: int, end: int) -> Table:
    rows = []
    for row in table.get("tableRows", []):
        row_start = row.get("startIndex", start)
        cells = []
        for cell in row.get("tableCells", []):
            cell_start = cell.get("startIndex", row_start)
            cell_style = cell.get("tableCellStyle", {})
            cells.append(
                TableCell(
                    start_index=cell_start,
                    end_index=cell.get("endIndex", cell_start),
                    content=tuple(
                        _parse_structural_element(e) for e in cell.get("content", [])
                    ),
                    row_span=cell_style.get("rowSpan", 1),
                    column_span=cell_style.get("columnSpan", 1),
                )
            )
        rows.append(
            TableRow(
                start_index=row_start,
                end_index=row.get("endIndex", row_start),
                cells=tuple(cells),
            )
        )
    return Table(start_index=start, end_index=end, rows=tuple(rows))
