from pydantic import BaseModel

from shared.models.submission import DocumentStatus


class VersionResponse(BaseModel):
    version: str


class DocumentResponse(BaseModel):
    uri: str
    status: DocumentStatus
    mime_type: str | None
    metadata: dict[str, str]
    binary_length: int
    binary_sha256: str
