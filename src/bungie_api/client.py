"""HTTP client and request interceptors for the platform API."""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Type, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from .envelope import ServerResponse
from .errors import DecodeError, TransportError
from .logging import redact_headers

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=ServerResponse)


@dataclass(frozen=True)
class ClientRequest:
    operation: str
    method: str
    path_spec: str
    headers: Dict[str, str] = field(default_factory=dict)
    path_params: Dict[str, Optional[str]] = field(default_factory=dict)
    query_params: Dict[str, Optional[str]] = field(default_factory=dict)
    body: Any = None
    base_url: Optional[str] = None

    def with_header(self, key: str, value: str) -> "ClientRequest":
        return dataclasses.replace(self, headers={**self.headers, key: value})


class Client(Protocol):
    async def do(self, request: ClientRequest, response_type: Type[R]) -> R:
        ...


def build_path(path_spec: str, path_params: Dict[str, Optional[str]]) -> str:
    path = path_spec
    for name, value in path_params.items():
        path = path.replace("{" + name + "}", quote(value or "", safe=""))
    return path


def present_params(params: Dict[str, Optional[str]]) -> Dict[str, str]:
    return {name: value for name, value in params.items() if value is not None}


def encode_body(body: Any) -> bytes:
    if isinstance(body, BaseModel):
        return body.model_dump_json(by_alias=True, exclude_none=True).encode()
    return json.dumps(body).encode()


class DefaultClient:
    """Issues exactly one HTTP request per call; retries belong to callers."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 20,
        verify_ssl: bool = True,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.verify_ssl = verify_ssl
        self.http_client = http_client

    def _headers(self, request: ClientRequest) -> Dict[str, str]:
        headers = {"X-API-Key": self.api_key}
        if request.body is not None:
            headers["Content-Type"] = "application/json"
        headers.update(request.headers)
        return headers

    async def do(self, request: ClientRequest, response_type: Type[R]) -> R:
        content = encode_body(request.body) if request.body is not None else None
        base_url = (request.base_url or self.base_url).rstrip("/")
        url = base_url + build_path(request.path_spec, request.path_params)
        params = present_params(request.query_params)
        headers = self._headers(request)
        logger.debug(
            "%s %s params=%s (%s) headers=%s",
            request.method,
            url,
            params,
            request.operation,
            redact_headers(headers),
        )

        try:
            if self.http_client is not None:
                response = await self.http_client.request(
                    request.method, url, params=params, headers=headers, content=content
                )
            else:
                async with httpx.AsyncClient(
                    timeout=self.timeout_seconds, verify=self.verify_ssl
                ) as client:
                    response = await client.request(
                        request.method, url, params=params, headers=headers, content=content
                    )
        except httpx.HTTPError as exc:
            raise TransportError(None, detail=str(exc)) from exc

        body = response.content
        try:
            envelope = response_type.decode(body)
        except (ValidationError, ValueError) as exc:
            if response.is_error:
                raise TransportError(response.status_code, body) from exc
            raise DecodeError(f"{request.operation}: {exc}", body) from exc

        envelope.raise_for_error()
        return envelope


class AddHeaderClient:
    def __init__(self, base: Client, header_key: str, header_value: str) -> None:
        self.base = base
        self.header_key = header_key
        self.header_value = header_value

    async def do(self, request: ClientRequest, response_type: Type[R]) -> R:
        request = request.with_header(self.header_key, self.header_value)
        return await self.base.do(request, response_type)


class BaseURLClient:
    def __init__(self, base: Client, base_url: str) -> None:
        self.base = base
        self.base_url = base_url

    async def do(self, request: ClientRequest, response_type: Type[R]) -> R:
        request = dataclasses.replace(request, base_url=self.base_url)
        return await self.base.do(request, response_type)
