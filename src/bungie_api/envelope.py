"""Response envelope wrapping every platform API payload."""

from __future__ import annotations

from typing import Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .errors import APIError

T = TypeVar("T")

# PlatformErrorCodes.None and PlatformErrorCodes.Success
SUCCESS_CODES = frozenset({0, 1})


class ServerResponse(BaseModel, Generic[T]):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    response: Optional[T] = Field(default=None, alias="Response")
    error_code: int = Field(alias="ErrorCode")
    throttle_seconds: int = Field(default=0, alias="ThrottleSeconds")
    error_status: str = Field(default="", alias="ErrorStatus")
    message: str = Field(default="", alias="Message")
    message_data: Dict[str, str] = Field(default_factory=dict, alias="MessageData")
    detailed_error_trace: str = Field(default="", alias="DetailedErrorTrace")

    _raw: bytes = PrivateAttr(default=b"")

    @classmethod
    def decode(cls, body: bytes) -> "ServerResponse[T]":
        envelope = cls.model_validate_json(body)
        envelope._raw = body
        return envelope

    def raw(self) -> bytes:
        return self._raw

    @property
    def succeeded(self) -> bool:
        return self.error_code in SUCCESS_CODES

    def raise_for_error(self) -> None:
        """Raise ``APIError`` when the envelope carries a non-success code.

        The payload of a failed envelope is undefined and must not be used.
        """
        if self.succeeded:
            return
        raise APIError(
            error_code=self.error_code,
            error_status=self.error_status,
            throttle_seconds=self.throttle_seconds,
            message=self.message,
            response=self,
        )
