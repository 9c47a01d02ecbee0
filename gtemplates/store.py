"""
Document Store

The engine talks to documents only through this interface: fetch a
document, apply an ordered batch of mutations, copy, and export. The
Google implementation wraps the Docs v1 and Drive v3 clients from
googleapiclient, running their blocking calls in a worker thread.
"""
import abc
import asyncio
import io
import logging
from typing import Any, Dict, Optional, Sequence

from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload

from gtemplates.errors import StaleSnapshotError
from gtemplates.mutations import Mutation, build_requests

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
HTML_MIME_TYPE = "text/html"


class DocumentStore(abc.ABC):
    """Abstract document store used by the template pipeline."""

    @abc.abstractmethod
    async def fetch(self, document_id: str) -> Dict[str, Any]:
        """Return the raw document JSON."""

    @abc.abstractmethod
    async def apply_mutations(
        self,
        document_id: str,
        operations: Sequence[Mutation],
        required_revision_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Apply operations in order as one batch; raise on failure.

        When required_revision_id is given, the batch is rejected with
        StaleSnapshotError if the document has changed since that revision.
        """

    @abc.abstractmethod
    async def copy(self, document_id: str, new_title: str) -> str:
        """Copy a document and return the new document's ID."""

    @abc.abstractmethod
    async def export_as_html(self, document_id: str) -> str:
        """Export a document as HTML."""

    @abc.abstractmethod
    async def export_as_pdf(self, document_id: str) -> bytes:
        """Export a document as PDF bytes."""


class GoogleDocumentStore(DocumentStore):
    """
    Document store backed by the Google Docs and Drive APIs.

    API errors (HttpError and transport errors) propagate unchanged, except
    a batch rejected by its required revision, which raises StaleSnapshotError.
    """

    def __init__(self, docs_service, drive_service):
        """
        Args:
            docs_service: Google Docs API v1 service instance
            drive_service: Google Drive API v3 service instance
        """
        self.docs_service = docs_service
        self.drive_service = drive_service

    async def fetch(self, document_id: str) -> Dict[str, Any]:
        logger.debug(f"Fetching document {document_id}")
        return await asyncio.to_thread(
            self.docs_service.documents().get(documentId=document_id).execute
        )

    async def apply_mutations(
        self,
        document_id: str,
        operations: Sequence[Mutation],
        required_revision_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        requests = build_requests(operations)
        if not requests:
            return {"replies": []}
        body: Dict[str, Any] = {'requests': requests}
        if required_revision_id:
            body['writeControl'] = {'requiredRevisionId': required_revision_id}
        logger.info(f"Applying {len(requests)} request(s) to document {document_id}")
        try:
            return await asyncio.to_thread(
                self.docs_service.documents().batchUpdate(
                    documentId=document_id,
                    body=body
                ).execute
            )
        except HttpError as error:
            if required_revision_id and error.resp.status == 400 and "revision" in str(error).lower():
                logger.warning(
                    f"Batch for {document_id} rejected: revision {required_revision_id} is no longer current"
                )
                raise StaleSnapshotError(required_revision_id, None) from error
            raise

    async def copy(self, document_id: str, new_title: str) -> str:
        result = await asyncio.to_thread(
            self.drive_service.files().copy(
                fileId=document_id,
                body={'name': new_title},
                supportsAllDrives=True,
            ).execute
        )
        logger.info(f"Copied document {document_id} to {result['id']} ('{new_title}')")
        return result["id"]

    async def _export(self, document_id: str, mime_type: str) -> bytes:
        request_obj = self.drive_service.files().export_media(
            fileId=document_id, mimeType=mime_type
        )
        fh = io.BytesIO()
        downloader = MediaIoBaseDownload(fh, request_obj)

        done = False
        while not done:
            _, done = await asyncio.to_thread(downloader.next_chunk)

        return fh.getvalue()

    async def export_as_html(self, document_id: str) -> str:
        return (await self._export(document_id, HTML_MIME_TYPE)).decode("utf-8")

    async def export_as_pdf(self, document_id: str) -> bytes:
        content = await self._export(document_id, PDF_MIME_TYPE)
        logger.info(f"Exported document {document_id} as PDF ({len(content):,} bytes)")
        return content
