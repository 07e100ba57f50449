from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class DocumentState(str, Enum):
    ABSENT = "absent"
    DOWNLOADING = "downloading"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    ACTIVE = "active"
    FAILED = "failed"


class KnowledgeMode(str, Enum):
    DOCUMENT = "document"
    CHUNKS = "chunks"
    GENERAL = "general"


class ReferenceDocument(BaseModel):
    display_name: str = Field(..., description="Display name used to find the document in the remote store")
    local_path: Optional[str] = None
    uri: Optional[str] = None
    remote_name: Optional[str] = Field(None, description="Provider file id, e.g. files/abc123")
    mime_type: str = "application/pdf"
    state: DocumentState = DocumentState.ABSENT
    error: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.state == DocumentState.ACTIVE and self.uri is not None

    def fail(self, reason: str) -> "ReferenceDocument":
        self.state = DocumentState.FAILED
        self.error = reason
        return self
