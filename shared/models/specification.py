"""Stage configuration model.

The surrounding framework hands the stage its settings as an ordered list of
name/value pairs. Only the four recognised keys are read.
"""

from typing import Iterable

from pydantic import BaseModel, ConfigDict

from shared.helper.HelperConfig import HelperConfig

NODE_MICO_SERVER = "micoserver"
NODE_MICO_USER = "micouser"
NODE_MICO_PASSWORD = "micopassword"
NODE_MICO_DOC_URI_FIELD = "micodocuri"

_NODE_TO_FIELD = {
    NODE_MICO_SERVER: "server",
    NODE_MICO_USER: "user",
    NODE_MICO_PASSWORD: "password",
    NODE_MICO_DOC_URI_FIELD: "doc_uri_field",
}


class StageConfiguration(BaseModel):
    """
    Settings of one pipeline stage. None means "not configured", which is
    kept distinct from an empty string.
    """

    model_config = ConfigDict(frozen=True)

    server: str | None = None
    user: str | None = None
    password: str | None = None
    doc_uri_field: str | None = None

    @classmethod
    def from_nodes(cls, nodes: Iterable[tuple[str, str | None]]) -> "StageConfiguration":
        """Build a configuration from ordered name/value pairs.

        Unknown names are ignored. A later pair for the same name overrides an earlier one.

        Args:
            nodes (Iterable[tuple[str, str | None]]): The specification pairs.

        Returns:
            StageConfiguration: The parsed configuration.
        """
        values: dict[str, str | None] = {}
        for name, value in nodes:
            field = _NODE_TO_FIELD.get(name)
            if field is not None:
                values[field] = value
        return cls(**values)

    @classmethod
    def from_env(cls, helper_config: HelperConfig) -> "StageConfiguration":
        """Build a configuration from the MICO_* environment variables."""
        return cls(
            server=helper_config.get_optional_string_val("MICO_SERVER"),
            user=helper_config.get_optional_string_val("MICO_USER"),
            password=helper_config.get_optional_string_val("MICO_PASSWORD"),
            doc_uri_field=helper_config.get_optional_string_val("MICO_DOC_URI_FIELD"),
        )

    def merged_over(self, fallback: "StageConfiguration") -> "StageConfiguration":
        """Return a configuration where every absent field is taken from fallback."""
        return StageConfiguration(
            server=self.server if self.server is not None else fallback.server,
            user=self.user if self.user is not None else fallback.user,
            password=self.password if self.password is not None else fallback.password,
            doc_uri_field=self.doc_uri_field if self.doc_uri_field is not None else fallback.doc_uri_field,
        )
