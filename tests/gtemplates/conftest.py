"""
Pytest fixtures for the template engine tests.

DocBuilder assembles Docs API document JSON with native indices laid out
the way the Docs API reports them: a section break at 0, paragraphs that
end in a newline, runs measured in UTF-16 code units, and tables whose start, row, cell and end slots each
take one index.
"""
from typing import Any, Dict, List, Sequence

import pytest

from gtemplates.document_model import utf16_len


class DocBuilder:
    """Builds synthetic Google Docs documents with consistent indices."""

    def __init__(self, revision_id: str = "rev-1", title: str = "Template", document_id: str = "doc-1"):
        self.revision_id = revision_id
        self.title = title
        self.document_id = document_id
        self.content: List[Dict[str, Any]] = [
            {"startIndex": 0, "endIndex": 1, "sectionBreak": {"sectionStyle": {}}}
        ]
        self.index = 1

    def _paragraph_at(self, start: int, runs: Sequence[Any]) -> Dict[str, Any]:
        elements = []
        cursor = start
        for run in runs:
            if isinstance(run, dict):
                # Inline element such as {"pageBreak": {}}, one index slot
                elements.append({"startIndex": cursor, "endIndex": cursor + 1, **run})
                cursor += 1
                continue
            elements.append(
                {"startIndex": cursor, "endIndex": cursor + utf16_len(run), "textRun": {"content": run, "textStyle": {}}}
            )
            cursor += utf16_len(run)
        return {
            "startIndex": start,
            "endIndex": cursor,
            "paragraph": {"elements": elements, "paragraphStyle": {"namedStyleType": "NORMAL_TEXT"}},
        }

    @staticmethod
    def _with_newline(runs: Sequence[Any]) -> List[Any]:
        runs = list(runs) or [""]
        if isinstance(runs[-1], str):
            runs[-1] = runs[-1] if runs[-1].endswith("\n") else runs[-1] + "\n"
        else:
            runs.append("\n")
        return runs

    def paragraph(self, *runs: Any) -> int:
        """Append a paragraph made of text runs (and inline element dicts); returns its start index."""
        start = self.index
        element = self._paragraph_at(start, self._with_newline(runs))
        self.content.append(element)
        self.index = element["endIndex"]
        return start

    def table(self, rows: Sequence[Sequence[str]]) -> int:
        """Append a table whose cells each hold one paragraph; returns the table start index."""
        start = self.index
        cursor = start + 1
        table_rows = []
        for row in rows:
            row_start = cursor
            cursor += 1
            cells = []
            for text in row:
                cell_start = cursor
                cursor += 1
                paragraph = self._paragraph_at(cursor, self._with_newline([text]))
                cursor = paragraph["endIndex"]
                cells.append(
                    {
                        "startIndex": cell_start,
                        "endIndex": cursor,
                        "content": [paragraph],
                        "tableCellStyle": {"rowSpan": 1, "columnSpan": 1},
                    }
                )
            table_rows.append({"startIndex": row_start, "endIndex": cursor, "tableCells": cells})
        cursor += 1
        self.content.append(
            {
                "startIndex": start,
                "endIndex": cursor,
                "table": {"rows": len(rows), "columns": len(rows[0]) if rows else 0, "tableRows": table_rows},
            }
        )
        self.index = cursor
        return start

    def build(self) -> Dict[str, Any]:
        return {
            "documentId": self.document_id,
            "title": self.title,
            "revisionId": self.revision_id,
            "body": {"content": list(self.content)},
        }


@pytest.fixture
def doc_builder():
    """Factory fixture: doc_builder(revision_id=...) returns a fresh DocBuilder."""
    return DocBuilder


@pytest.fixture
def invoice_document():
    """A small template with variables, an asset section block and a section marker."""
    doc = DocBuilder()
    doc.paragraph("Hello {{client_name}}, invoice {{invoice_id:number}} due {{due_date:date}}")
    doc.paragraph("{{#ASSET_SECTION:Property}}{{Tanah}} {{Bangunan}}{{/#ASSET_SECTION:Property}}")
    doc.paragraph("[[section:Assets]]")
    doc.paragraph("Regards, {{ client_name }}")
    return doc.build()
