"""Base API surface shared by the generated bindings."""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, Optional, Type, TypeVar

import httpx

from .client import AddHeaderClient, BaseURLClient, Client, ClientRequest, DefaultClient, R
from .config import Settings, get_settings
from .envelope import ServerResponse
from .errors import DecodeError, TransportError
from .models import Manifest

logger = logging.getLogger(__name__)

A = TypeVar("A", bound="BaseAPI")


class BaseAPI:
    """Holds the interceptor chain; generated operations subclass this."""

    def __init__(
        self,
        client: Client,
        content_base_url: str = "https://www.bungie.net",
        timeout_seconds: float = 20,
        content_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.client = client
        self.content_base_url = content_base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.content_client = content_client

    def with_interceptor(self: A, interceptor: Callable[[Client], Client]) -> A:
        api = copy.copy(self)
        api.client = interceptor(self.client)
        return api

    def with_header(self: A, key: str, value: str) -> A:
        return self.with_interceptor(lambda client: AddHeaderClient(client, key, value))

    def with_auth_token(self: A, token: str) -> A:
        return self.with_header("Authorization", f"Bearer {token}")

    def with_base_url(self: A, base_url: str) -> A:
        return self.with_interceptor(lambda client: BaseURLClient(client, base_url))

    async def _call(self, request: ClientRequest, response_type: Type[R]) -> R:
        return await self.client.do(request, response_type)

    async def get_manifest(self) -> Manifest:
        envelope = await self._call(
            ClientRequest(
                operation="Destiny2.GetDestinyManifest",
                method="GET",
                path_spec="/Destiny2/Manifest/",
            ),
            ServerResponse[Manifest],
        )
        return envelope.response or Manifest()

    async def get_definition(self, table: str, hash_identifier: int) -> Any:
        """Fetch one definition record through the entity-definition endpoint."""
        envelope = await self._call(
            ClientRequest(
                operation="Destiny2.GetDestinyEntityDefinition",
                method="GET",
                path_spec="/Destiny2/Manifest/{entityType}/{hashIdentifier}/",
                path_params={"entityType": table, "hashIdentifier": str(hash_identifier)},
            ),
            ServerResponse[Any],
        )
        return envelope.response

    async def fetch_table(self, path: str) -> Dict[int, Any]:
        url = f"{self.content_base_url}/{path.lstrip('/')}"
        try:
            if self.content_client is not None:
                response = await self.content_client.get(url)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.get(url)
        except httpx.HTTPError as exc:
            raise TransportError(None, detail=str(exc)) from exc
        if response.is_error:
            raise TransportError(response.status_code, response.content)
        try:
            payload = response.json()
            if not isinstance(payload, dict):
                raise ValueError("expected an object keyed by hash")
            table = {int(key): value for key, value in payload.items()}
        except ValueError as exc:
            raise DecodeError(f"definition table {path}: {exc}", response.content) from exc
        logger.debug("Fetched %s (%d entries)", path, len(table))
        return table


def new_api(settings: Optional[Settings] = None, api_class: Type[A] = BaseAPI) -> A:
    settings = settings or get_settings()
    client = DefaultClient(
        base_url=settings.api_base_url,
        api_key=settings.api_key,
        timeout_seconds=settings.timeout_seconds,
        verify_ssl=settings.verify_ssl,
    )
    api = api_class(
        AddHeaderClient(client, "User-Agent", settings.user_agent),
        content_base_url=settings.content_base_url,
        timeout_seconds=settings.timeout_seconds,
    )
    return api
