"""Wrapper value types used by generated bindings.

Each type carries its own pydantic core schema so generated models can use
it directly in annotations (``HashRef[InventoryItemDefinition]``,
``Nullable[int]``, ``FlagSet[GameVersions]``, ``Int64``).
"""

from __future__ import annotations

import enum
import re
from datetime import datetime
from typing import (
    Any,
    Generic,
    Iterable,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
    Union,
    get_args,
)

from pydantic import GetCoreSchemaHandler, TypeAdapter
from pydantic_core import core_schema

T = TypeVar("T")
D = TypeVar("D")
E = TypeVar("E")

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1
UINT32_MAX = (1 << 32) - 1
UINT64_MASK = (1 << 64) - 1

_DECIMAL = re.compile(r"-?[0-9]+")


class Int64(int):
    """64-bit integer that travels as a quoted decimal string."""

    def __new__(cls, value: Any = 0) -> "Int64":
        number = int.__new__(cls, value)
        if not INT64_MIN <= number <= INT64_MAX:
            raise ValueError(f"{int(number)} is out of range for a signed 64-bit integer")
        return number

    @classmethod
    def decode(cls, raw: Union[bytes, str]) -> "Int64":
        if isinstance(raw, bytes):
            raw = raw.decode("ascii")
        text = raw.strip().replace('"', "")
        if not _DECIMAL.fullmatch(text):
            raise ValueError(f"invalid int64 literal {raw!r}")
        return cls(int(text))

    def encode(self) -> str:
        return f'"{int(self)}"'

    def __repr__(self) -> str:
        return f"Int64({int(self)})"

    @classmethod
    def _validate(cls, value: Any) -> "Int64":
        if isinstance(value, Int64):
            return value
        if isinstance(value, bool):
            raise ValueError("booleans are not valid int64 values")
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, (str, bytes)):
            return cls.decode(value)
        raise ValueError(f"cannot read int64 from {type(value).__name__}")

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda value: str(int(value)), info_arg=False, when_used="json"
            ),
        )


class Timestamp(str):
    """ISO-8601 ``date-time`` string as sent by the platform."""

    def parse(self) -> datetime:
        return datetime.fromisoformat(self.replace("Z", "+00:00"))

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_after_validator_function(cls, core_schema.str_schema())


class PlatformEnum(enum.IntEnum):
    """Integer enum that keeps values added upstream after generation."""

    @classmethod
    def _missing_(cls, value: object) -> Optional["PlatformEnum"]:
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        member = int.__new__(cls, value)
        member._name_ = f"UNKNOWN_{value}"
        member._value_ = value
        return member


class Nullable(Generic[T]):
    """A value that is either absent (wire ``null``) or present.

    A present zero value (``0``, ``""``, ``False``) is still present.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Optional[T] = None) -> None:
        self._value = value

    def is_null(self) -> bool:
        return self._value is None

    def value(self) -> Tuple[Optional[T], bool]:
        return self._value, self._value is not None

    def must(self) -> Optional[T]:
        return self._value

    @classmethod
    def decode(cls, raw: Any) -> "Nullable[Any]":
        return cls(raw)

    def encode(self) -> Any:
        return self._value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Nullable):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash((Nullable, self._value))

    def __repr__(self) -> str:
        if self.is_null():
            return "Nullable(null)"
        return f"Nullable({self._value!r})"

    def __format__(self, spec: str) -> str:
        if self.is_null():
            return "null"
        return format(self._value, spec)

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        args = get_args(source)
        inner = handler.generate_schema(args[0]) if args else core_schema.any_schema()
        wire = core_schema.nullable_schema(inner)
        from_wire = core_schema.no_info_after_validator_function(cls, wire)
        return core_schema.json_or_python_schema(
            json_schema=from_wire,
            python_schema=core_schema.union_schema(
                [core_schema.is_instance_schema(cls), from_wire],
                mode="left_to_right",
            ),
            serialization=core_schema.wrap_serializer_function_ser_schema(
                lambda value, nxt: nxt(value.must()), info_arg=False, schema=wire
            ),
        )


class FlagSet(Generic[E]):
    """Bitfield over an enum domain, stored as an unsigned 64-bit integer."""

    __slots__ = ("bits",)

    def __init__(self, bits: int = 0) -> None:
        self.bits = int(bits) & UINT64_MASK

    def has(self, value: E) -> bool:
        return self.bits & (int(value) & UINT64_MASK) != 0

    def has_all(self, *values: E) -> bool:
        return all(self.has(value) for value in values)

    def add(self, value: E) -> "FlagSet[E]":
        return type(self)(self.bits | (int(value) & UINT64_MASK))

    def remove(self, value: E) -> "FlagSet[E]":
        return type(self)(self.bits & ~(int(value) & UINT64_MASK))

    def clear(self, value: Optional[E] = None) -> "FlagSet[E]":
        # Always empties the set; the argument is accepted and ignored.
        return type(self)(0)

    def __int__(self) -> int:
        return self.bits

    def __index__(self) -> int:
        return self.bits

    def __bool__(self) -> bool:
        return self.bits != 0

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FlagSet):
            return self.bits == other.bits
        if isinstance(other, int):
            return self.bits == other & UINT64_MASK
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.bits)

    def __repr__(self) -> str:
        return f"FlagSet({self.bits:#x})"

    @classmethod
    def _validate(cls, value: Any) -> "FlagSet[Any]":
        if isinstance(value, FlagSet):
            return value
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError("flag sets are read from integers")
        return cls(value)

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                int, info_arg=False
            ),
        )


class DefinitionSource(Protocol):
    async def get_definition(self, table: str, hash_identifier: int) -> Any:
        ...


class HashRef(Generic[D]):
    """A 32-bit foreign key into the definition table of ``D``.

    ``D`` names its table through a ``__definition_table__`` class attribute.
    The reference holds no network capability; ``resolve`` is handed one.
    """

    __slots__ = ("value", "definition")

    def __init__(self, value: int, definition: Optional[type] = None) -> None:
        if not 0 <= int(value) <= UINT32_MAX:
            raise ValueError(f"{value} is out of range for a 32-bit hash")
        self.value = int(value)
        self.definition = definition

    @property
    def table(self) -> str:
        table = getattr(self.definition, "__definition_table__", None)
        if not table:
            raise TypeError(f"{self.definition!r} does not name a definition table")
        return table

    async def resolve(self, source: DefinitionSource) -> D:
        raw = await source.get_definition(self.table, self.value)
        return TypeAdapter(self.definition).validate_python(raw)

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def __eq__(self, other: object) -> bool:
        if isinstance(other, HashRef):
            return self.value == other.value and self.definition is other.definition
        if isinstance(other, int):
            return self.value == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        name = getattr(self.definition, "__name__", "?")
        return f"HashRef[{name}]({self.value})"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        args = get_args(source)
        definition = args[0] if args else None

        def validate(value: Any) -> HashRef[Any]:
            if isinstance(value, HashRef):
                value = value.value
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError("hash references are read from integers")
            return cls(value, definition)

        return core_schema.no_info_plain_validator_function(
            validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                int, info_arg=False
            ),
        )


def format_param(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Nullable):
        return format_param(value.must())
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, enum.Enum):
        return str(value.value)
    if isinstance(value, (int, HashRef, FlagSet)):
        return str(int(value))
    return str(value)


def join_array(values: Optional[Iterable[Any]]) -> Optional[str]:
    if values is None:
        return None
    return ",".join(format_param(value) or "" for value in values)
