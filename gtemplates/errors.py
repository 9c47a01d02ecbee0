"""
Template Engine Error Handling

This module provides the exception hierarchy raised by the template marker
engine, together with structured, actionable error payloads for tool
responses. Every exception carries a StructuredError so callers can report
what went wrong and what to do about it (usually: re-fetch the document).
"""
import json
import logging
from enum import Enum
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for template operations."""

    # Marker errors
    MALFORMED_MARKER = "MALFORMED_MARKER"
    UNKNOWN_SECTION_NAME = "UNKNOWN_SECTION_NAME"

    # Position errors
    STALE_SNAPSHOT = "STALE_SNAPSHOT"
    CELL_NOT_FOUND = "CELL_NOT_FOUND"
    TABLE_NOT_FOUND = "TABLE_NOT_FOUND"

    # Document errors
    UNSUPPORTED_ELEMENT = "UNSUPPORTED_ELEMENT"


@dataclass
class ErrorContext:
    """Additional context for error messages."""
    received: Optional[Dict[str, Any]] = None
    expected: Optional[Dict[str, Any]] = None
    available_sections: Optional[List[str]] = None
    possible_causes: Optional[List[str]] = None


@dataclass
class StructuredError:
    """
    Structured error response with actionable guidance.

    Attributes:
        error: Always True for error responses
        code: Machine-readable error code from ErrorCode enum
        message: Human-readable error description
        reason: Explanation of why this error occurred
        suggestion: Actionable advice on how to fix the issue
        fatal: False for diagnostics that never stop processing
        context: Additional context like received values
    """
    error: bool = True
    code: str = ""
    message: str = ""
    reason: str = ""
    suggestion: str = ""
    fatal: bool = True
    context: Optional[ErrorContext] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding empty values."""
        result = {
            "error": self.error,
            "code": self.code,
            "message": self.message,
            "fatal": self.fatal,
        }

        if self.reason:
            result["reason"] = self.reason
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.context:
            ctx = asdict(self.context)
            ctx = {k: v for k, v in ctx.items() if v is not None}
            if ctx:
                result["context"] = ctx

        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


class TemplateErrorBuilder:
    """
    Builder for creating structured error payloads.

    Usage:
        error = TemplateErrorBuilder.cell_not_found(row=3, column=1, rows=2, columns=2)
        print(error.to_json())
    """

    @staticmethod
    def malformed_marker(
        section_name: str,
        position: int,
        issue: str
    ) -> StructuredError:
        """Diagnostic for an unterminated or mismatched asset-section tag."""
        return StructuredError(
            code=ErrorCode.MALFORMED_MARKER.value,
            message=f"Asset section '{section_name}' at position {position} is {issue}",
            reason=(
                "An asset section needs a matching closing tag with the same name. "
                "Unmatched tags are left in the document as plain text."
            ),
            suggestion=(
                f"Close the block with {{{{/#ASSET_SECTION:{section_name}}}}} "
                "or remove the opening tag."
            ),
            fatal=False,
            context=ErrorContext(received={"section_name": section_name, "position": position})
        )

    @staticmethod
    def unknown_section_name(
        section_name: str,
        available_sections: List[str]
    ) -> StructuredError:
        """Diagnostic for a section marker with no caller-supplied data."""
        return StructuredError(
            code=ErrorCode.UNKNOWN_SECTION_NAME.value,
            message=f"No data supplied for section '{section_name}'",
            reason="The marker was left unresolved in the document; other markers were processed.",
            suggestion="Provide section data keyed by the exact name used in the [[section:...]] marker.",
            fatal=False,
            context=ErrorContext(
                received={"section_name": section_name},
                available_sections=available_sections
            )
        )

    @staticmethod
    def stale_snapshot(
        expected_revision: Optional[str],
        received_revision: Optional[str],
        index: Optional[int] = None
    ) -> StructuredError:
        """Error when positions are resolved against an outdated document snapshot."""
        received = {"revision_id": received_revision}
        if index is not None:
            received["text_index"] = index
        return StructuredError(
            code=ErrorCode.STALE_SNAPSHOT.value,
            message="Document positions were computed from an outdated snapshot",
            reason=(
                "Every insertion or deletion shifts all later document indices, so "
                "positions are only valid for the snapshot they were read from."
            ),
            suggestion="Re-fetch the document and re-extract its text before retrying.",
            context=ErrorContext(
                received=received,
                expected={"revision_id": expected_revision}
            )
        )

    @staticmethod
    def cell_not_found(
        row: int,
        column: int,
        rows: int,
        columns: int
    ) -> StructuredError:
        """Error when a table cell address does not exist in the actual table."""
        return StructuredError(
            code=ErrorCode.CELL_NOT_FOUND.value,
            message=f"Cell ({row}, {column}) not found. Table has {rows} row(s) and {columns} column(s)",
            reason="Row and column indices are 0-based and must fall inside the table returned by the document store.",
            suggestion="Re-fetch the document and check the table was created with the expected dimensions.",
            context=ErrorContext(
                received={"row": row, "column": column},
                expected={"rows": rows, "columns": columns},
                possible_causes=[
                    "The store created fewer rows than requested",
                    "The table was edited after the snapshot was taken",
                ]
            )
        )

    @staticmethod
    def table_not_found(insertion_index: int, total_tables: int) -> StructuredError:
        """Error when a freshly inserted table cannot be located."""
        return StructuredError(
            code=ErrorCode.TABLE_NOT_FOUND.value,
            message=f"No table found near index {insertion_index}. Document has {total_tables} table(s)",
            reason="The table insertion did not produce a table at the expected position.",
            suggestion="Re-fetch the document and inspect it before retrying the section.",
            context=ErrorContext(received={"insertion_index": insertion_index})
        )

    @staticmethod
    def unsupported_element(kind: str, start_index: Optional[int]) -> StructuredError:
        """Error when the document contains an element kind the model does not know."""
        return StructuredError(
            code=ErrorCode.UNSUPPORTED_ELEMENT.value,
            message=f"Unsupported document element '{kind}'",
            reason="Only paragraphs, tables, section breaks and tables of contents are understood.",
            suggestion="Remove the element from the template or extend the document model.",
            context=ErrorContext(received={"kind": kind, "start_index": start_index})
        )


class TemplateEngineError(Exception):
    """Base class for template engine errors."""

    def __init__(self, structured: StructuredError):
        super().__init__(structured.message)
        self.structured = structured

    @property
    def code(self) -> str:
        return self.structured.code

    def to_dict(self) -> Dict[str, Any]:
        return self.structured.to_dict()


class MalformedMarkerError(TemplateEngineError):
    """Unterminated or mismatched asset-section tag. Reported, never raised by the tokenizer."""

    def __init__(self, section_name: str, position: int, issue: str = "unterminated"):
        super().__init__(TemplateErrorBuilder.malformed_marker(section_name, position, issue))
        self.section_name = section_name
        self.position = position


class UnknownSectionNameError(TemplateEngineError):
    """Section marker without caller-supplied data. Reported, processing continues."""

    def __init__(self, section_name: str, available_sections: List[str]):
        super().__init__(
            TemplateErrorBuilder.unknown_section_name(section_name, sorted(available_sections))
        )
        self.section_name = section_name


class StaleSnapshotError(TemplateEngineError):
    """Positions requested against a snapshot that is no longer current."""

    def __init__(
        self,
        expected_revision: Optional[str],
        received_revision: Optional[str],
        index: Optional[int] = None
    ):
        super().__init__(
            TemplateErrorBuilder.stale_snapshot(expected_revision, received_revision, index)
        )


class CellNotFoundError(TemplateEngineError):
    """Requested (row, column) does not exist in the table."""

    def __init__(self, row: int, column: int, rows: int, columns: int):
        super().__init__(TemplateErrorBuilder.cell_not_found(row, column, rows, columns))
        self.row = row
        self.column = column


class TableNotFoundError(TemplateEngineError):
    """Inserted table could not be located in the post-mutation snapshot."""

    def __init__(self, insertion_index: int, total_tables: int):
        super().__init__(TemplateErrorBuilder.table_not_found(insertion_index, total_tables))


class DocumentStructureError(TemplateEngineError):
    """Document JSON contains an element kind outside the closed node set."""

    def __init__(self, kind: str, start_index: Optional[int] = None):
        super().__init__(TemplateErrorBuilder.unsupported_element(kind, start_index))
        self.kind = kind


def format_error(error: StructuredError) -> str:
    """
    Format a StructuredError for return to the user.

    Returns a JSON string that can be parsed by both humans and AI agents.
    """
    return error.to_json()
