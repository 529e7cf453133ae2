import threading
from typing import Callable

from shared.clients.platform.PlatformClientInterface import PlatformClientInterface
from shared.exceptions import PlatformClientError
from shared.helper.HelperConfig import HelperConfig

PlatformClientFactory = Callable[[HelperConfig, str | None, str | None, str | None], PlatformClientInterface]


class PlatformClientManager:
    """
    Holds the single analysis platform client of the process.

    The first caller of get_or_create() constructs the client; every later
    caller receives that same client, whatever credentials it passes.
    Construction is serialised by a lock, reads after publication are not.
    """

    _client: PlatformClientInterface | None = None
    _lock = threading.Lock()
    _factory: PlatformClientFactory | None = None

    @classmethod
    def get_or_create(
        cls,
        helper_config: HelperConfig,
        server: str | None,
        user: str | None,
        password: str | None,
    ) -> PlatformClientInterface:
        """
        Returns the shared platform client, constructing it on first use.

        Args:
            helper_config (HelperConfig): Process configuration (logger, timeouts).
            server (str | None): Platform server address. Only used by the first successful caller.
            user (str | None): Platform user. Only used by the first successful caller.
            password (str | None): Platform password. Only used by the first successful caller.

        Returns:
            PlatformClientInterface: The shared client.

        Raises:
            PlatformClientError: If construction fails. The manager stays uninitialised so a later caller can retry.
        """
        client = cls._client
        if client is not None:
            return client

        with cls._lock:
            if cls._client is None:
                factory = cls._factory or cls._default_factory
                try:
                    client = factory(helper_config, server, user, password)
                    client.boot()
                except ValueError as e:
                    raise PlatformClientError(f"Could not construct analysis platform client: {e}") from e
                helper_config.get_logger().info(
                    "Initialised %s client for server %s", client.get_engine_name(), client.get_server()
                )
                cls._client = client
            return cls._client

    @classmethod
    def set_factory(cls, factory: PlatformClientFactory | None) -> None:
        """Replace the construction routine. None restores the default engine lookup."""
        with cls._lock:
            cls._factory = factory

    @classmethod
    def reset(cls) -> None:
        """Close and forget the shared client. The next get_or_create() constructs a new one."""
        with cls._lock:
            client, cls._client = cls._client, None
        if client is not None:
            client.close()

    @staticmethod
    def _default_factory(
        helper_config: HelperConfig,
        server: str | None,
        user: str | None,
        password: str | None,
    ) -> PlatformClientInterface:
        """
        Instantiates the client of the engine named by PLATFORM_ENGINE (default "mico").

        Raises:
            ValueError: If the engine is not supported.
        """
        engine = helper_config.get_string_val("PLATFORM_ENGINE", default="mico").strip().lower().capitalize()
        className = f"PlatformClient{engine}"
        try:
            module = __import__(
                f"shared.clients.platform.{engine.lower()}.{className}",
                fromlist=[className],
            )
            client_class = getattr(module, className)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported platform engine specified: '{engine}'. Error: {e}")
        return client_class(helper_config=helper_config, server=server, user=user, password=password)
