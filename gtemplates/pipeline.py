"""
Template Pipeline

Runs template operations against a document store as explicit stages:
fetch -> compute -> mutate -> re-fetch. Each stage works from a freshly
fetched snapshot, so positions are never reused across a mutation.

Features:
- One operation in flight per document: a per-document asyncio.Lock,
  shared by every pipeline on the event loop, is held from the fetch a
  batch is planned from until that batch has been applied
- Every batch carries the revision it was planned from, so the store
  rejects it if the document changed underneath
- Batches are applied whole and in planner order; a failed batch stops
  the pipeline and the store error propagates unchanged
- Section tables built in two stages per marker: insert the table, then
  fill it using the cell indices the store actually produced
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from gtemplates.errors import StaleSnapshotError, TableNotFoundError
from gtemplates.markers import SectionTableMarker
from gtemplates.mutations import InsertTable, Mutation, total_position_shift
from gtemplates.planner import (
    SkippedSection,
    build_table_fill,
    plan_substitution,
    select_section,
)
from gtemplates.position_mapper import PositionMapper
from gtemplates.sections import ASSET_SECTION_MIN_PADDING, AssetSection, Section
from gtemplates.snapshot import DocumentSnapshot
from gtemplates.store import DocumentStore
from gtemplates.table_layout import BODY_FONT_SIZE, TITLE_FONT_SIZE, layout
from gtemplates.variables import TemplateScan, scan_text

logger = logging.getLogger(__name__)

# document_id -> (event loop, lock); a lock is only valid on the loop it was made on
_document_locks: Dict[str, Tuple[asyncio.AbstractEventLoop, asyncio.Lock]] = {}


def document_lock(document_id: str) -> asyncio.Lock:
    """The lock serializing work on one document, shared by every pipeline."""
    loop = asyncio.get_running_loop()
    entry = _document_locks.get(document_id)
    if entry is None or entry[0] is not loop:
        entry = (loop, asyncio.Lock())
        _document_locks[document_id] = entry
    return entry[1]


def document_link(document_id: str) -> str:
    return f"https://docs.google.com/document/d/{document_id}/edit"


@dataclass
class BatchExecutionResult:
    """Result of applying one batch."""
    success: bool
    operations_completed: int
    total_operations: int
    total_position_shift: int
    message: str
    operation_summary: List[str] = field(default_factory=list)
    document_link: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "operations_completed": self.operations_completed,
            "total_operations": self.total_operations,
            "total_position_shift": self.total_position_shift,
            "message": self.message,
            "operation_summary": self.operation_summary,
            "document_link": self.document_link,
        }


@dataclass
class SectionRenderResult:
    rendered: List[str] = field(default_factory=list)
    skipped: List[SkippedSection] = field(default_factory=list)
    batches: List[BatchExecutionResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rendered": self.rendered,
            "skipped": [s.to_dict() for s in self.skipped],
            "batches": len(self.batches),
        }


@dataclass
class GeneratedDocument:
    document_id: str
    title: str
    variables: Optional[BatchExecutionResult] = None
    sections: Optional[SectionRenderResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document_id": self.document_id,
            "title": self.title,
            "document_link": document_link(self.document_id),
            "variables": self.variables.to_dict() if self.variables else None,
            "sections": self.sections.to_dict() if self.sections else None,
        }


class TemplatePipeline:
    """
    High-level template operations against a DocumentStore.

    Usage:
        pipeline = TemplatePipeline(GoogleDocumentStore(docs, drive))
        scan = await pipeline.scan(template_id)
        doc = await pipeline.generate_document(template_id, "Filled", values={"name": "Acme"})
    """

    def __init__(
        self,
        store: DocumentStore,
        tab_id: Optional[str] = None,
        min_padding: int = ASSET_SECTION_MIN_PADDING,
        title_font_size: int = TITLE_FONT_SIZE,
        body_font_size: int = BODY_FONT_SIZE,
    ):
        self.store = store
        self.tab_id = tab_id
        self.min_padding = min_padding
        self.title_font_size = title_font_size
        self.body_font_size = body_font_size

    async def snapshot(self, document_id: str) -> DocumentSnapshot:
        """Fetch a document and build a fresh snapshot of it."""
        doc_data = await self.store.fetch(document_id)
        return DocumentSnapshot.from_document(doc_data, document_id=document_id, tab_id=self.tab_id)

    async def scan(self, document_id: str) -> TemplateScan:
        """Fetch a document and find its template markers."""
        snapshot = await self.snapshot(document_id)
        return scan_text(snapshot.linear_text)

    async def apply_batch(
        self,
        document_id: str,
        operations: Sequence[Mutation],
        revision_id: Optional[str] = None,
    ) -> BatchExecutionResult:
        """
        Apply operations to a document as one ordered batch.

        Waits for any other work on the same document to finish. If the
        store fails, the error propagates unchanged and the document must be
        re-fetched before any position-dependent work is retried.
        """
        async with document_lock(document_id):
            return await self._apply(document_id, operations, revision_id)

    async def _apply(
        self,
        document_id: str,
        operations: Sequence[Mutation],
        revision_id: Optional[str] = None,
    ) -> BatchExecutionResult:
        # Caller holds document_lock(document_id)
        if not operations:
            return BatchExecutionResult(
                success=True,
                operations_completed=0,
                total_operations=0,
                total_position_shift=0,
                message="No operations to apply",
                document_link=document_link(document_id),
            )

        try:
            await self.store.apply_mutations(document_id, operations, required_revision_id=revision_id)
        except Exception as e:
            logger.error(
                f"Batch of {len(operations)} operation(s) failed on {document_id}; "
                f"document may be partially modified and must be re-fetched: {e}"
            )
            raise

        logger.info(f"Applied {len(operations)} operation(s) to {document_id}")
        return BatchExecutionResult(
            success=True,
            operations_completed=len(operations),
            total_operations=len(operations),
            total_position_shift=total_position_shift(operations),
            message=f"Successfully applied {len(operations)} operation(s)",
            operation_summary=[op.describe() for op in operations][:5],
            document_link=document_link(document_id),
        )

    async def fill_variables(
        self,
        document_id: str,
        values: Mapping[str, str],
        asset_sections: Sequence[AssetSection] = (),
    ) -> BatchExecutionResult:
        """Replace variables and asset section blocks using text substitution."""
        async with document_lock(document_id):
            snapshot = await self.snapshot(document_id)
            operations = plan_substitution(values, asset_sections, snapshot, min_padding=self.min_padding)
            return await self._apply(document_id, operations, snapshot.revision_id)

    def _marker_at(
        self, snapshot: DocumentSnapshot, ordinal: int, name: str
    ) -> SectionTableMarker:
        """Find the ordinal-th section marker in a snapshot, checking its name."""
        markers = scan_text(snapshot.linear_text).section_markers
        if ordinal >= len(markers) or markers[ordinal].section_name != name:
            raise StaleSnapshotError(None, snapshot.revision_id)
        return markers[ordinal]

    async def render_section_tables(
        self, document_id: str, sections: Mapping[str, Section]
    ) -> SectionRenderResult:
        """
        Replace every [[section:Name]] marker with a filled 2-column table.

        Markers are handled last to first. For each one: fetch, insert the
        table at the marker, re-fetch, locate the new table, fill its cells
        and delete the marker. Markers without data are left in place. The
        document lock is held throughout, so no other batch lands between
        a fetch and the batch planned from it.
        """
        async with document_lock(document_id):
            return await self._render_section_tables(document_id, sections)

    async def _render_section_tables(
        self, document_id: str, sections: Mapping[str, Section]
    ) -> SectionRenderResult:
        result = SectionRenderResult()
        snapshot = await self.snapshot(document_id)
        markers = scan_text(snapshot.linear_text).section_markers
        fresh = True

        for ordinal in reversed(range(len(markers))):
            marker = markers[ordinal]
            section, skipped = select_section(marker, sections)
            if skipped is not None:
                result.skipped.append(skipped)
                continue

            table_layout = layout(section, self.title_font_size, self.body_font_size)

            # Stage 1: insert the empty table at the marker
            if not fresh:
                snapshot = await self.snapshot(document_id)
            current = self._marker_at(snapshot, ordinal, marker.section_name)
            start, _ = PositionMapper(snapshot).map_span(current.span_start, current.span_end)
            insert = InsertTable(
                at=start.document_index,
                rows=table_layout.row_count,
                columns=table_layout.column_count,
            )
            result.batches.append(await self._apply(document_id, [insert], snapshot.revision_id))

            # Stage 2: fill the table the store actually created
            snapshot = await self.snapshot(document_id)
            mapper = PositionMapper(snapshot)
            table = mapper.table_at(insert.geometry.table_start)
            if table is None:
                raise TableNotFoundError(insert.at, len(snapshot.body.tables))
            current = self._marker_at(snapshot, ordinal, marker.section_name)
            marker_start, marker_end = mapper.map_span(current.span_start, current.span_end)
            fill = build_table_fill(
                table,
                table_layout,
                marker_range=(marker_start.document_index, marker_end.document_index),
            )
            result.batches.append(await self._apply(document_id, fill, snapshot.revision_id))
            result.rendered.append(marker.section_name)
            fresh = False
            logger.info(f"Rendered section '{marker.section_name}' as a table in {document_id}")

        result.rendered.reverse()
        result.skipped.reverse()
        return result

    async def generate_document(
        self,
        template_id: str,
        title: str,
        values: Optional[Mapping[str, str]] = None,
        asset_sections: Sequence[AssetSection] = (),
        sections: Optional[Mapping[str, Section]] = None,
    ) -> GeneratedDocument:
        """
        Copy a template and fill the copy.

        Variables and asset sections are substituted first, then section
        tables are rendered against the re-fetched result.
        """
        document_id = await self.store.copy(template_id, title)
        generated = GeneratedDocument(document_id=document_id, title=title)

        if values or asset_sections:
            generated.variables = await self.fill_variables(document_id, values or {}, asset_sections)
        if sections:
            generated.sections = await self.render_section_tables(document_id, sections)

        return generated

    async def preview_html(self, document_id: str) -> str:
        return await self.store.export_as_html(document_id)

    async def export_pdf(self, document_id: str) -> bytes:
        return await self.store.export_as_pdf(document_id)
