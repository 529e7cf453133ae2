import base64

from shared.clients.platform.PlatformClientInterface import PlatformClientInterface
from shared.clients.platform.models.ContentItem import ContentItem, ContentPart
from shared.exceptions import PlatformClientError
from shared.helper.HelperConfig import HelperConfig


class PlatformClientMico(PlatformClientInterface):
    def __init__(self, helper_config: HelperConfig, server: str | None, user: str | None, password: str | None):
        super().__init__(helper_config=helper_config, server=server, user=user, password=password)
        self._base_url = self._server if "://" in self._server else f"http://{self._server}"

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Mico"

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._user:
            token = base64.b64encode(f"{self._user}:{self._password or ''}".encode("utf-8")).decode("ascii")
            return {"Authorization": f"Basic {token}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/broker/status"

    def _get_endpoint_create_item(self) -> str:
        return "/broker/inject/create"

    def _get_endpoint_add_part(self) -> str:
        return "/broker/inject/add"

    def _get_endpoint_submit_item(self) -> str:
        return "/broker/inject/submit"

    def _get_params_add_part(self, item_uri: str, mime_type: str, name: str) -> dict:
        return {"ci": item_uri, "type": mime_type, "name": name}

    def _get_params_submit_item(self, item_uri: str) -> dict:
        return {"ci": item_uri}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_endpoint_create_item(self, response: dict) -> ContentItem:
        uri = response.get("uri")
        if not uri:
            raise PlatformClientError(f"MICO broker returned no content item uri: {response!r}")
        return ContentItem(uri=uri)

    def _parse_endpoint_add_part(self, response: dict, mime_type: str, name: str) -> ContentPart:
        uri = response.get("uri")
        if not uri:
            raise PlatformClientError(f"MICO broker returned no content part uri: {response!r}")
        return ContentPart(uri=uri, mime_type=mime_type, name=name)
