"""Content type resolution with a sniffing fallback."""

from typing import BinaryIO, Callable

from shared.exceptions import TypeDetectionError

GENERIC_MIME_TYPE = "application/octet-stream"
SNIFF_SAMPLE_SIZE = 8192  # bytes handed to the detector


def detect_with_magic(sample: bytes) -> str:
    """Detect the media type of a byte sample with libmagic.

    Args:
        sample (bytes): The leading bytes of the content.

    Returns:
        str: The best-guess media type, e.g. "image/png".
    """
    # imported here so that libmagic is only needed once sniffing is actually used
    import magic

    return magic.from_buffer(sample, mime=True)


class TypeResolver:
    """Resolves a document's content type, sniffing the content only when the declared type is absent or generic."""

    def __init__(self, detector: Callable[[bytes], str] | None = None, sample_size: int = SNIFF_SAMPLE_SIZE) -> None:
        self._detector = detector or detect_with_magic
        self._sample_size = sample_size

    @staticmethod
    def needs_detection(declared_type: str | None) -> bool:
        return not declared_type or declared_type == GENERIC_MIME_TYPE

    def resolve(self, declared_type: str | None, reader: BinaryIO) -> str:
        """Return the declared type, or the sniffed type if the declared one is absent or generic.

        Args:
            declared_type (str | None): The type declared by the document.
            reader (BinaryIO): A fresh reader over the content. Only read when sniffing; the caller closes it.

        Returns:
            str: The resolved media type.

        Raises:
            TypeDetectionError: If the detector fails or returns nothing.
        """
        if not self.needs_detection(declared_type):
            return declared_type

        sample = reader.read(self._sample_size)
        try:
            detected = self._detector(sample)
        except Exception as e:
            raise TypeDetectionError(f"Content type detection failed: {e}") from e
        if not detected:
            raise TypeDetectionError("Content type detection returned no media type.")
        return detected
