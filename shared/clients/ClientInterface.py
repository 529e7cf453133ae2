from abc import ABC, abstractmethod

import httpx
from httpx._types import QueryParamTypes, RequestContent
from typing import Any
from shared.exceptions import PlatformClientError
from shared.models.config import EnvConfig

from shared.helper.HelperConfig import HelperConfig


class ClientInterface(ABC):
    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config

        # client and config
        self._client: httpx.Client | None = None
        self.validate_full_configuration()
        self.timeout = self.get_config_val("TIMEOUT", default=30.0, val_type="number")
        self.verify_ssl = self.get_config_val("VERIFY_SSL", default=True, val_type="bool")

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Validates that all required configuration values for the client are set and valid.

        Raises:
            ValueError: If any required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """
        Returns the type of the client in lowercase. E.g. "platform"
        """
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        pass

    def get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "mico"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns all configuration entries of the client. Subclasses extend the list.

        Returns:
            list[EnvConfig]: A list containing the details of each configuration key.
        """
        return [
            EnvConfig(env_key="TIMEOUT", val_type="number", default=30.0),
            EnvConfig(env_key="VERIFY_SSL", val_type="bool", default=True),
        ]

    def _get_config_key_name(self, raw_key: str) -> str:
        """
        Returns:
            str: The full configuration key name for the client. E.g. "PLATFORM_MICO_TIMEOUT"
        """
        key_prefix = f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}"
        return f"{key_prefix}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Retrieves the value of a configuration key for the client.

        Args:
            raw_key (str): The raw configuration key name
            default (Any): The default value to return if the configuration key is not set
            val_type (str): The type of the configuration value ("string", "number", "bool")
        """
        key = self._get_config_key_name(raw_key)
        if val_type == "string":
            return self._helper_config.get_string_val(key, default=default)
        elif val_type == "number":
            return self._helper_config.get_number_val(key, default=default)
        elif val_type == "bool":
            return self._helper_config.get_bool_val(key, default=default)
        else:
            raise ValueError(f"Unsupported config value type '{val_type}' for env key '{raw_key}' in {self.get_client_type().upper()} client '{self.get_engine_name()}'.")

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Returns the authentication header for the backend server, if credentials are set.

        Returns:
            dict: A dictionary containing the auth data
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """
        Returns the base URL of the backend server (e.g. "http://localhost:8080")
        """
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """
        Returns the endpoint path for healthcheck requests (e.g. "/broker/status")
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    def do_healthcheck(self) -> httpx.Response:
        """Check if the backend is reachable.

        Returns:
            httpx.Response: The response from the healthcheck request.
        """
        return self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck(), raise_on_error=True)

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    def boot(self, transport: httpx.BaseTransport | None = None) -> None:
        """Initialise the HTTP client. No request is sent.

        Args:
            transport (httpx.BaseTransport | None): Optional transport, e.g. a mock transport in tests.
        """
        self._client = httpx.Client(timeout=self.timeout, verify=self.verify_ssl, transport=transport)

    def close(self) -> None:
        """Close the HTTP client and any other resources."""
        if self._client:
            self._client.close()
            self._client = None

    def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send an HTTP request to the backend.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, …).
            content: Raw bytes / stream body.
            json: JSON-serialisable body (sets Content-Type automatically).
            params: URL query parameters.
            endpoint: Path to append to the base URL (leading slash optional).
            additional_headers: Extra headers that override the defaults.
            raise_on_error: Raise PlatformClientError on a non-2xx status.

        Returns:
            The raw httpx.Response.

        Raises:
            PlatformClientError: If the client is not initialised, the transport fails, or the status is not 2xx (when raise_on_error is True).
        """
        if self._client is None:
            raise PlatformClientError("HTTP client not initialised. Call boot() before making requests.")

        endpoint = "/" + endpoint.strip().lstrip("/") if endpoint.strip() else ""

        # For content (raw bytes), the caller must pass the correct type via additional_headers.
        headers: dict = {}
        headers.update(self._get_auth_header())
        if additional_headers:
            headers.update(additional_headers)

        kwargs: dict = {
            "url": f"{self._get_base_url().rstrip('/')}{endpoint}",
            "headers": headers,
            "params": params,
        }

        # add exactly one body argument
        if content is not None:
            kwargs["content"] = content
        elif json is not None:
            kwargs["json"] = json

        try:
            response = self._client.request(method, **kwargs)
        except httpx.HTTPError as e:
            self.logging.error("Request to %s failed: %s", kwargs["url"], e)
            raise PlatformClientError(f"Request to {kwargs['url']} failed: {e}") from e

        # Log and raise on error if requested
        if raise_on_error and response.status_code >= 300:
            self.logging.error(
                "Request to %s failed with status %d: %s",
                kwargs["url"],
                response.status_code,
                response.text,
            )
            raise PlatformClientError(
                f"Request to {kwargs['url']} failed with status {response.status_code}"
            )

        return response
