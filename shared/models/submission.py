"""Result types of the submission pipeline."""

from enum import Enum

from pydantic import BaseModel


class DocumentStatus(str, Enum):
    """Status reported back to the ingestion framework for a processed document."""

    ACCEPTED = "accepted"
    PERMANENTLY_REJECTED = "permanently_rejected"


class SubmissionResult(str, Enum):
    SUBMITTED = "submitted"
    SKIPPED = "skipped"
    FAILED = "failed"


class SubmissionOutcome(BaseModel):
    """
    Outcome of handing one document to the analysis platform.

    Attributes:
        result (SubmissionResult): SUBMITTED when the platform accepted the item, SKIPPED when the document was not eligible, FAILED when the platform raised.
        mime_type (str | None): The type the document was gated on.
        item_uri (str | None): The content item uri, set only when SUBMITTED.
        error (str | None): The platform error message, set only when FAILED.
    """

    result: SubmissionResult
    mime_type: str | None = None
    item_uri: str | None = None
    error: str | None = None

    @classmethod
    def submitted(cls, mime_type: str | None, item_uri: str) -> "SubmissionOutcome":
        return cls(result=SubmissionResult.SUBMITTED, mime_type=mime_type, item_uri=item_uri)

    @classmethod
    def skipped(cls, mime_type: str | None) -> "SubmissionOutcome":
        return cls(result=SubmissionResult.SKIPPED, mime_type=mime_type)

    @classmethod
    def failed(cls, mime_type: str | None, error: str) -> "SubmissionOutcome":
        return cls(result=SubmissionResult.FAILED, mime_type=mime_type, error=error)
