import itertools

import pytest

from tableau_guide.config import Settings
from tableau_guide.services.gemini import ProviderError, RemoteFile
from tableau_guide.services.knowledge import KnowledgeBase


class FakeClient:
    """Stands in for GeminiClient"""

    def __init__(self, answer="Use Analysis > Create Calculated Field.", error=None):
        self.answer = answer
        self.error = error
        self.calls = []

    async def generate(self, parts):
        self.calls.append(parts)
        if self.error is not None:
            raise ProviderError(self.error)
        return self.answer


class FakeFileStore:
    """Stands in for GeminiFileStore; uploads become active after `polls_until_active` polls"""

    def __init__(self, files=None, polls_until_active=1, final_state="ACTIVE"):
        self.files = list(files or [])
        self.polls_until_active = polls_until_active
        self.final_state = final_state
        self.uploads = []
        self.polls = []
        self._ids = itertools.count(1)

    async def list_files(self):
        return list(self.files)

    async def upload(self, path, mime_type, display_name):
        with open(path, 'rb') as f:
            content = f.read()
        name = f"files/upload-{next(self._ids)}"
        self.uploads.append({'path': path, 'mime_type': mime_type, 'display_name': display_name, 'size': len(content)})
        remote = RemoteFile(
            name=name,
            display_name=display_name,
            uri=f"https://generativelanguage.googleapis.com/v1beta/{name}",
            mime_type=mime_type,
            state="PROCESSING",
        )
        self.files.append(remote)
        return remote

    async def get(self, name):
        self.polls.append(name)
        remote = next(f for f in self.files if f.name == name)
        if remote.state == "PROCESSING" and self.polls.count(name) >= self.polls_until_active:
            remote.state = self.final_state
        return remote


def write_fake_pdf(url, path, timeout):
    with open(path, 'wb') as f:
        f.write(b'%PDF-1.4 fake manual')
    return path


@pytest.fixture
def settings(tmp_path):
    return Settings(
        gemini_api_key='test-key',
        manual_local_path=str(tmp_path / 'tableau_manual.pdf'),
        poll_interval=0,
        max_poll_attempts=3,
    )


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def knowledge(fake_client):
    return KnowledgeBase(fake_client)
