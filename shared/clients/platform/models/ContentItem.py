from pydantic import BaseModel


class ContentPart(BaseModel):
    """
    Represents one binary part of a content item on the analysis platform.
    """
    uri: str
    mime_type: str
    name: str


class ContentItem(BaseModel):
    """
    Represents a content item on the analysis platform. The uri is opaque and is stored verbatim on the outgoing document.
    """
    uri: str
    parts: list[ContentPart] = []
