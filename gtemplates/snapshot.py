"""
Document snapshots.

A snapshot is everything derived from one fetch of a document: the typed
body, its linear text, and the revision it was read at. Positions computed
from a snapshot are only valid until the next mutation of that document.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from gtemplates.document_model import DocumentBody, parse_body
from gtemplates.text_extractor import LinearText, extract

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentSnapshot:
    document_id: str
    revision_id: Optional[str]
    title: str
    body: DocumentBody
    linear_text: LinearText

    @classmethod
    def from_document(
        cls,
        doc_data: Dict[str, Any],
        document_id: Optional[str] = None,
        tab_id: Optional[str] = None,
    ) -> "DocumentSnapshot":
        """Build a snapshot from a raw Docs API document."""
        revision_id = doc_data.get("revisionId")
        body = parse_body(doc_data, tab_id)
        snapshot = cls(
            document_id=document_id or doc_data.get("documentId", ""),
            revision_id=revision_id,
            title=doc_data.get("title", "Untitled Document"),
            body=body,
            linear_text=extract(body, revision_id=revision_id),
        )
        logger.debug(
            f"Snapshot of {snapshot.document_id} at revision {revision_id}: "
            f"{len(snapshot.linear_text)} chars, end index {body.end_index}"
        )
        return snapshot
