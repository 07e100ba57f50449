import asyncio
import logging
import os
from typing import Callable, Optional

import requests

from ..config import Settings
from ..models.document import DocumentState, ReferenceDocument
from .gemini import RemoteFile

logger = logging.getLogger(__name__)

REMOTE_ACTIVE = "ACTIVE"
REMOTE_PROCESSING = "PROCESSING"
REMOTE_FAILED = "FAILED"


def download_file(url: str, path: str, timeout: float = 300.0) -> str:
    """Stream a URL to disk; the file only appears at `path` once complete."""
    partial_path = f"{path}.part"
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    try:
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with open(partial_path, 'wb') as f:
                for block in response.iter_content(chunk_size=1024 * 1024):
                    if block:
                        f.write(block)
        os.replace(partial_path, path)
    finally:
        if os.path.exists(partial_path):
            os.remove(partial_path)
    return path


class DocumentProvisioner:
    """Makes the reference manual available locally or in the Gemini file store."""

    def __init__(self, settings: Settings, file_store, downloader: Optional[Callable[..., str]] = None):
        self.settings = settings
        self.file_store = file_store
        self.downloader = downloader or download_file

    def _new_document(self) -> ReferenceDocument:
        return ReferenceDocument(display_name=self.settings.manual_display_name)

    async def find_existing(self) -> Optional[RemoteFile]:
        """Look up the manual by display name, preferring an active copy."""
        matches = [
            f for f in await self.file_store.list_files()
            if f.display_name == self.settings.manual_display_name
        ]
        if not matches:
            return None
        for remote in matches:
            if remote.state == REMOTE_ACTIVE:
                return remote
        return matches[0]

    async def ensure_available(self) -> ReferenceDocument:
        """Return a reference to the manual in the remote store, uploading it if needed.

        Never raises: failures are logged and reported as a document in the
        ``failed`` state so the caller can fall back to ungrounded answers.
        """
        document = self._new_document()
        try:
            logger.info(f"Checking remote store for '{document.display_name}'...")
            existing = await self.find_existing()

            if existing and existing.state == REMOTE_ACTIVE:
                logger.info(f"Found active remote document: {existing.uri}")
                return self._apply_remote(document, existing)

            if existing and existing.state == REMOTE_PROCESSING:
                logger.info(f"Remote document {existing.name} is still processing, waiting for it")
                self._apply_remote(document, existing)
                return await self._wait_until_active(document, existing)

            await self._fetch(document)

            logger.info("Uploading manual to Gemini File API...")
            document.state = DocumentState.UPLOADING
            uploaded = await self.file_store.upload(
                document.local_path,
                mime_type=document.mime_type,
                display_name=document.display_name,
            )
            logger.info(f"File uploaded: {uploaded.name} ({uploaded.uri})")
            self._apply_remote(document, uploaded)
            self.discard_local(document)

            return await self._wait_until_active(document, uploaded)

        except Exception as e:
            logger.error(f"Error provisioning reference document: {str(e)}", exc_info=True)
            return document.fail(str(e))

    async def fetch_local(self) -> ReferenceDocument:
        """Make sure a local copy of the manual exists, downloading it if absent."""
        document = self._new_document()
        try:
            await self._fetch(document)
            return document
        except Exception as e:
            logger.error(f"Error downloading reference document: {str(e)}", exc_info=True)
            return document.fail(str(e))

    def discard_local(self, document: ReferenceDocument) -> None:
        if not document.local_path:
            return
        try:
            if os.path.exists(document.local_path):
                os.remove(document.local_path)
                logger.info(f"Removed local copy {document.local_path}")
        except OSError as e:
            logger.warning(f"Could not remove local copy {document.local_path}: {str(e)}")
        document.local_path = None

    async def _fetch(self, document: ReferenceDocument) -> None:
        path = self.settings.manual_local_path
        if os.path.exists(path) and os.path.getsize(path) > 0:
            logger.info(f"Local manual found at {path}")
        else:
            logger.info(f"Downloading manual from {self.settings.manual_url} (this may take a while)...")
            document.state = DocumentState.DOWNLOADING
            await asyncio.to_thread(
                self.downloader, self.settings.manual_url, path, self.settings.download_timeout
            )
            logger.info(f"Download complete: {path}")
        document.local_path = path

    async def _wait_until_active(self, document: ReferenceDocument, remote: RemoteFile) -> ReferenceDocument:
        document.state = DocumentState.PROCESSING
        attempts = self.settings.max_poll_attempts
        for attempt in range(1, attempts + 1):
            remote = await self.file_store.get(remote.name)
            if remote.state == REMOTE_ACTIVE:
                logger.info(f"Manual is ready for queries: {remote.uri}")
                return self._apply_remote(document, remote)
            if remote.state == REMOTE_FAILED:
                return document.fail(f"File processing failed. State: {remote.state}")

            logger.info(f"Processing... attempt {attempt}/{attempts} (state: {remote.state})")
            if attempt < attempts:
                await asyncio.sleep(self.settings.poll_interval)

        return document.fail(f"File processing timed out after {attempts} attempts")

    @staticmethod
    def _apply_remote(document: ReferenceDocument, remote: RemoteFile) -> ReferenceDocument:
        document.remote_name = remote.name
        document.uri = remote.uri
        if remote.mime_type:
            document.mime_type = remote.mime_type
        if remote.state == REMOTE_ACTIVE:
            document.state = DocumentState.ACTIVE
            document.error = None
        return document
