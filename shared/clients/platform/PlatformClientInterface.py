from abc import abstractmethod
from typing import BinaryIO, Iterator

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.clients.platform.models.ContentItem import ContentItem, ContentPart
from shared.exceptions import PlatformClientError
from shared.helper.HelperConfig import HelperConfig

UPLOAD_CHUNK_SIZE = 65536


def _iter_chunks(stream: BinaryIO) -> Iterator[bytes]:
    while True:
        chunk = stream.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        yield chunk


class PlatformClientInterface(ClientInterface):
    """
    Base class of clients for an external content analysis platform. Credentials are passed through as configured on the stage.
    """

    def __init__(self, helper_config: HelperConfig, server: str | None, user: str | None, password: str | None):
        if not server:
            raise PlatformClientError("Analysis platform server is not configured.")
        self._server = server
        self._user = user
        self._password = password
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "platform"

    def get_server(self) -> str:
        return self._server

    def create_injector(self) -> "InjectionSession":
        """
        Opens a submission session on the platform. No request is sent until content is created.

        Returns:
            InjectionSession: The session used to create and submit content items.
        """
        return InjectionSession(self)

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_create_item(self) -> str:
        """
        Returns the endpoint path that creates an empty content item.
        """
        pass

    @abstractmethod
    def _get_endpoint_add_part(self) -> str:
        """
        Returns the endpoint path that adds a binary part to a content item.
        """
        pass

    @abstractmethod
    def _get_endpoint_submit_item(self) -> str:
        """
        Returns the endpoint path that submits a content item for analysis.
        """
        pass

    @abstractmethod
    def _get_params_add_part(self, item_uri: str, mime_type: str, name: str) -> dict:
        pass

    @abstractmethod
    def _get_params_submit_item(self, item_uri: str) -> dict:
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def _parse_endpoint_create_item(self, response: dict) -> ContentItem:
        pass

    @abstractmethod
    def _parse_endpoint_add_part(self, response: dict, mime_type: str, name: str) -> ContentPart:
        pass

    def _read_json(self, response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError as e:
            raise PlatformClientError(f"Invalid response from {response.request.url}: {e}") from e
        if not isinstance(data, dict):
            raise PlatformClientError(f"Unexpected response from {response.request.url}: {data!r}")
        return data

    ##########################################
    ############### REQUESTS #################
    ##########################################

    def do_create_content_item(self) -> ContentItem:
        """
        Creates an empty content item on the platform.

        Returns:
            ContentItem: The created item.

        Raises:
            PlatformClientError: If the request fails or the response is malformed.
        """
        response = self.do_request(method="POST", endpoint=self._get_endpoint_create_item(), raise_on_error=True)
        return self._parse_endpoint_create_item(self._read_json(response))

    def do_add_content_part(self, item: ContentItem, mime_type: str, name: str, stream: BinaryIO) -> ContentPart:
        """
        Uploads a binary part into an existing content item.

        Args:
            item (ContentItem): The target item. The created part is appended to item.parts.
            mime_type (str): Media type of the part.
            name (str): Name of the part, usually the document URI.
            stream (BinaryIO): The content, read until exhausted.

        Returns:
            ContentPart: The created part.

        Raises:
            PlatformClientError: If the request fails or the response is malformed.
        """
        response = self.do_request(
            method="POST",
            endpoint=self._get_endpoint_add_part(),
            params=self._get_params_add_part(item.uri, mime_type, name),
            content=_iter_chunks(stream),
            additional_headers={"Content-Type": mime_type},
            raise_on_error=True,
        )
        part = self._parse_endpoint_add_part(self._read_json(response), mime_type, name)
        item.parts.append(part)
        return part

    def do_submit_content_item(self, item: ContentItem) -> None:
        """
        Submits a content item for analysis.

        Raises:
            PlatformClientError: If the request fails.
        """
        self.do_request(
            method="POST",
            endpoint=self._get_endpoint_submit_item(),
            params=self._get_params_submit_item(item.uri),
            raise_on_error=True,
        )


class InjectionSession:
    """Submission session on the analysis platform."""

    def __init__(self, client: PlatformClientInterface):
        self._client = client

    def create_content_item(self) -> ContentItem:
        return self._client.do_create_content_item()

    def create_content_item_with_part(self, mime_type: str, name: str, stream: BinaryIO) -> ContentItem:
        """Create a content item holding a single part with the given content."""
        item = self._client.do_create_content_item()
        self._client.do_add_content_part(item, mime_type, name, stream)
        return item

    def add_content_part(self, item: ContentItem, mime_type: str, name: str, stream: BinaryIO) -> ContentPart:
        return self._client.do_add_content_part(item, mime_type, name, stream)

    def submit_content_item(self, item: ContentItem) -> None:
        self._client.do_submit_content_item(item)
