"""Pydantic model for documents flowing through the pipeline stage.

The binary content is carried as an open readable stream and is excluded
from serialisation; only the descriptive fields are dumped.
"""

from typing import Any, BinaryIO

from pydantic import BaseModel, ConfigDict, Field


class Document(BaseModel):
    """A document handed to the pipeline stage by the ingestion process.

    Attributes:
        uri (str): Unique identifier of the document; also used as the content part name on the platform.
        mime_type (str | None): Declared content type, possibly empty or generic.
        metadata (dict[str, str]): Named metadata fields.
        binary_stream (BinaryIO | None): Readable byte stream of the content.
        binary_length (int): Length of the content in bytes.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    uri: str
    mime_type: str | None = None
    metadata: dict[str, str] = {}
    binary_stream: Any = Field(default=None, exclude=True, repr=False)
    binary_length: int = 0

    def duplicate(self) -> "Document":
        """Return a copy that can be annotated without touching this document.

        The metadata mapping is copied; the binary stream is shared until the
        copy is rebound with set_binary().
        """
        return self.model_copy(update={"metadata": dict(self.metadata)})

    def add_field(self, name: str, value: str) -> None:
        self.metadata[name] = value

    def set_binary(self, stream: BinaryIO, length: int) -> None:
        self.binary_stream = stream
        self.binary_length = length
