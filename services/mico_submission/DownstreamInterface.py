from abc import ABC, abstractmethod

from shared.models.document import Document
from shared.models.submission import DocumentStatus


class DownstreamInterface(ABC):
    """Next stage of the ingestion pipeline that receives the annotated document."""

    @abstractmethod
    def send_document(self, document_uri: str, document: Document) -> DocumentStatus:
        """
        Hands a document to the next stage.

        Args:
            document_uri (str): The URI of the document.
            document (Document): The outgoing document. Its binary stream is owned by the receiver.

        Returns:
            DocumentStatus: Whether the next stage accepted the document.
        """
        pass


class AcceptingDownstream(DownstreamInterface):
    """Stage that accepts every document and leaves its stream to the caller of process()."""

    def send_document(self, document_uri: str, document: Document) -> DocumentStatus:
        return DocumentStatus.ACCEPTED
