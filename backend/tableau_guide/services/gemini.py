"""Thin wrappers around the google-generativeai SDK.

The rest of the package talks to these two gateways only, so tests can swap
in fakes and the blocking file API never runs on the event loop.
"""
import asyncio
import logging
from typing import Any, List, Optional

import google.generativeai as genai
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Raised when the generative-model provider fails to answer."""


class RemoteFile(BaseModel):
    name: str
    display_name: Optional[str] = None
    uri: Optional[str] = None
    mime_type: Optional[str] = None
    state: str = "STATE_UNSPECIFIED"


def _to_remote_file(file) -> RemoteFile:
    state = getattr(file, 'state', None)
    return RemoteFile(
        name=file.name,
        display_name=getattr(file, 'display_name', None),
        uri=getattr(file, 'uri', None),
        mime_type=getattr(file, 'mime_type', None),
        state=getattr(state, 'name', None) or str(state),
    )


class GeminiFileStore:
    """Remote document registry backed by the Gemini File API."""

    def __init__(self, api_key: str):
        genai.configure(api_key=api_key)

    async def list_files(self) -> List[RemoteFile]:
        files = await asyncio.to_thread(lambda: list(genai.list_files()))
        return [_to_remote_file(f) for f in files]

    async def upload(self, path: str, mime_type: str, display_name: str) -> RemoteFile:
        file = await asyncio.to_thread(
            genai.upload_file, path, mime_type=mime_type, display_name=display_name
        )
        return _to_remote_file(file)

    async def get(self, name: str) -> RemoteFile:
        file = await asyncio.to_thread(genai.get_file, name)
        return _to_remote_file(file)


class GeminiClient:
    """Generation client; returns the first text result of a prompt."""

    def __init__(self, api_key: str, model_name: str = "gemini-2.0-flash"):
        genai.configure(api_key=api_key)
        self.model_name = model_name
        self.model = genai.GenerativeModel(model_name)

    async def generate(self, parts: List[Any]) -> str:
        try:
            response = await self.model.generate_content_async(parts)
            return response.text
        except Exception as e:
            logger.error(f"Gemini generation failed ({self.model_name}): {str(e)}", exc_info=True)
            raise ProviderError(str(e)) from e
