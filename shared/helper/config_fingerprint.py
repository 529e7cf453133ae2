"""Version token for the pipeline stage.

The ingestion framework compares this string between runs to decide whether
a document has to be reprocessed. Only configuration is considered, never
document content.
"""

from shared.models.specification import StageConfiguration

PRESENT_MARKER = "+"
ABSENT_MARKER = "-"


def _pack_value(value: str | None) -> str:
    if value is None:
        return ABSENT_MARKER
    # length prefix keeps values containing markers from bleeding into the next field
    return f"{PRESENT_MARKER}{len(value)}:{value}"


def compute_fingerprint(config: StageConfiguration) -> str:
    """Pack the stage configuration into a deterministic string.

    Two configurations produce the same string exactly when every field is
    equal, including whether it is present at all.

    Args:
        config (StageConfiguration): The stage configuration.

    Returns:
        str: The packed version string.
    """
    return "".join(
        _pack_value(value)
        for value in (config.server, config.user, config.password, config.doc_uri_field)
    )
