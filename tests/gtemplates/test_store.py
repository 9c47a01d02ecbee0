"""
Tests for GoogleDocumentStore using mocked Docs and Drive services.
"""
from unittest.mock import MagicMock, patch

import pytest
from googleapiclient.errors import HttpError

from gtemplates.errors import StaleSnapshotError
from gtemplates.mutations import InsertText, ReplaceAllText
from gtemplates.store import HTML_MIME_TYPE, PDF_MIME_TYPE, GoogleDocumentStore


class FakeDownloader:
    """Stands in for MediaIoBaseDownload, writing fixed content in two chunks."""

    content = b"%PDF-1.4 fake"

    def __init__(self, fh, request):
        self.fh = fh
        self.request = request
        self.calls = 0

    def next_chunk(self):
        half = len(self.content) // 2
        chunk = self.content[:half] if self.calls == 0 else self.content[half:]
        self.fh.write(chunk)
        self.calls += 1
        return None, self.calls == 2


class TestGoogleDocumentStore:
    """Tests for GoogleDocumentStore."""

    def setup_method(self):
        self.docs = MagicMock()
        self.drive = MagicMock()
        self.store = GoogleDocumentStore(self.docs, self.drive)

    @pytest.mark.asyncio
    async def test_fetch(self):
        self.docs.documents.return_value.get.return_value.execute.return_value = {"documentId": "d"}

        result = await self.store.fetch("d")

        assert result == {"documentId": "d"}
        self.docs.documents.return_value.get.assert_called_with(documentId="d")

    @pytest.mark.asyncio
    async def test_apply_mutations_sends_one_ordered_batch(self):
        self.docs.documents.return_value.batchUpdate.return_value.execute.return_value = {"replies": [{}, {}]}
        operations = [InsertText(at=1, text="a"), ReplaceAllText(find_text="{{x}}", replace_text="1")]

        await self.store.apply_mutations("d", operations)

        kwargs = self.docs.documents.return_value.batchUpdate.call_args.kwargs
        assert kwargs["documentId"] == "d"
        assert [list(r)[0] for r in kwargs["body"]["requests"]] == ["insertText", "replaceAllText"]

    @pytest.mark.asyncio
    async def test_apply_mutations_sends_required_revision(self):
        self.docs.documents.return_value.batchUpdate.return_value.execute.return_value = {"replies": [{}]}

        await self.store.apply_mutations("d", [InsertText(at=1, text="a")], required_revision_id="rev-7")

        body = self.docs.documents.return_value.batchUpdate.call_args.kwargs["body"]
        assert body["writeControl"] == {"requiredRevisionId": "rev-7"}

    @pytest.mark.asyncio
    async def test_revision_mismatch_raises_stale_snapshot(self):
        error = HttpError(
            MagicMock(status=400, reason="Bad Request"),
            b'{"error": {"message": "The required revision ID rev-7 does not match the latest revision."}}',
        )
        self.docs.documents.return_value.batchUpdate.return_value.execute.side_effect = error

        with pytest.raises(StaleSnapshotError) as exc_info:
            await self.store.apply_mutations("d", [InsertText(at=1, text="a")], required_revision_id="rev-7")

        assert exc_info.value.structured.context.expected == {"revision_id": "rev-7"}
        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_other_bad_requests_propagate(self):
        error = HttpError(MagicMock(status=400, reason="Bad Request"), b"{}")
        self.docs.documents.return_value.batchUpdate.return_value.execute.side_effect = error

        with pytest.raises(HttpError):
            await self.store.apply_mutations("d", [InsertText(at=1, text="a")], required_revision_id="rev-7")

    @pytest.mark.asyncio
    async def test_apply_no_operations_skips_api(self):
        result = await self.store.apply_mutations("d", [])

        assert result == {"replies": []}
        self.docs.documents.return_value.batchUpdate.assert_not_called()

    @pytest.mark.asyncio
    async def test_errors_propagate_unchanged(self):
        error = RuntimeError("quota exceeded")
        self.docs.documents.return_value.batchUpdate.return_value.execute.side_effect = error

        with pytest.raises(RuntimeError) as exc_info:
            await self.store.apply_mutations("d", [InsertText(at=1, text="a")])

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_copy(self):
        self.drive.files.return_value.copy.return_value.execute.return_value = {"id": "new-id"}

        new_id = await self.store.copy("template", "Filled")

        assert new_id == "new-id"
        self.drive.files.return_value.copy.assert_called_with(
            fileId="template", body={"name": "Filled"}, supportsAllDrives=True
        )

    @pytest.mark.asyncio
    async def test_export_pdf(self):
        with patch("gtemplates.store.MediaIoBaseDownload", FakeDownloader):
            content = await self.store.export_as_pdf("d")

        assert content == FakeDownloader.content
        self.drive.files.return_value.export_media.assert_called_with(fileId="d", mimeType=PDF_MIME_TYPE)

    @pytest.mark.asyncio
    async def test_export_html(self):
        with patch("gtemplates.store.MediaIoBaseDownload", FakeDownloader):
            html = await self.store.export_as_html("d")

        assert html == FakeDownloader.content.decode("utf-8")
        self.drive.files.return_value.export_media.assert_called_with(fileId="d", mimeType=HTML_MIME_TYPE)
