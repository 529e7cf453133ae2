from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter required by a client.

    Attributes:
        env_key (str): The raw key of the environment variable. The client prefixes it with its type and engine, e.g. "TIMEOUT" -> "PLATFORM_MICO_TIMEOUT".
        val_type (str): The expected type of the value. Supported types are "string", "number" and "bool".
        default (str | int | float | bool | None): Value used when the variable is not set. If None, the variable is required.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | None = None
