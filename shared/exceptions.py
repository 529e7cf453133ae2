"""Exception hierarchy for the MICO bridge."""


class MicoBridgeError(Exception):
    """Base exception for the MICO bridge."""
    pass


class ConfigError(MicoBridgeError):
    """Raised when a required setting is missing or invalid."""
    pass


class SpoolIOError(MicoBridgeError):
    """Raised when writing to or reading from a spool fails."""
    pass


class SpoolInterruptedError(SpoolIOError):
    """Raised when a spool transfer was interrupted mid-way."""
    pass


class PlatformClientError(MicoBridgeError):
    """Raised by the MICO client on session, item or submission failures."""
    pass


class TypeDetectionError(MicoBridgeError):
    """Raised when the content sniffer cannot determine a media type."""
    pass
