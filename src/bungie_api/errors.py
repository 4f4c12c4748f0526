"""Error types raised by the generator and the runtime bindings."""

from __future__ import annotations

from typing import Any, Optional


class BungieAPIError(Exception):
    pass


class GenerationError(BungieAPIError):
    """The schema document violates what the generator supports."""


class UnsupportedSchemaError(GenerationError):
    pass


class DuplicateIdentifierError(GenerationError):
    def __init__(self, identifier: str, first_ref: str, second_ref: str) -> None:
        super().__init__(
            f"Duplicate schema for identifier ({identifier}): {second_ref} {first_ref}"
        )
        self.identifier = identifier
        self.refs = (first_ref, second_ref)


class UnresolvedReferenceError(GenerationError):
    pass


class UnsupportedOperationError(GenerationError):
    pass


class TransportError(BungieAPIError):
    """Connection failure, or a failing HTTP status with an undecodable body."""

    def __init__(self, status_code: Optional[int], body: bytes = b"", detail: str = "") -> None:
        message = f"HTTP {status_code}" if status_code is not None else "transport failure"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class DecodeError(BungieAPIError):
    def __init__(self, detail: str, body: bytes = b"") -> None:
        super().__init__(detail)
        self.body = body


class APIError(BungieAPIError):
    """The platform answered with a structured, non-success envelope."""

    def __init__(
        self,
        error_code: int,
        error_status: str,
        throttle_seconds: int,
        message: str = "",
        response: Any = None,
    ) -> None:
        super().__init__(f"{error_status} ({error_code}): {message}".rstrip(": "))
        self.error_code = error_code
        self.error_status = error_status
        self.throttle_seconds = throttle_seconds
        self.message = message
        self.response = response


class ManifestError(BungieAPIError):
    pass


class UnknownTableError(BungieAPIError):
    def __init__(self, table: str) -> None:
        super().__init__(f"unknown definition table {table!r}")
        self.table = table


class DefinitionNotFoundError(BungieAPIError):
    def __init__(self, table: str, hash_identifier: int) -> None:
        super().__init__(f"missing entry {hash_identifier} in {table}")
        self.table = table
        self.hash_identifier = hash_identifier
