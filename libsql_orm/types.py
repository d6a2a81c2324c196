"""
Core value and token types for libsql-orm.

- `Value`: the tagged storage-cell representation (null, integer, real, text,
  blob, boolean) with conversions to and from a JSON-shaped tree.
- `Operator`, `Aggregate`, `SortOrder`, `JoinType`: closed enumerations, each
  member carrying the SQL token it renders as.
- `parse_bool` / `StoredBool`: lenient boolean decoding for columns the engine
  stores as integers or strings.

The engine has no native boolean. A BOOLEAN value is written as integer 0/1
(`Value.to_storage`) and only becomes BOOLEAN again on read when the caller
knows the column is boolean-typed (`Value.from_storage(raw, is_boolean=True)`).
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Dict

from pydantic import BeforeValidator
from pydantic_core import to_jsonable_python

from libsql_orm.errors import SerializationError

I64_MIN = -(2**63)
I64_MAX = 2**63 - 1

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off"})


class ValueType(str, Enum):
    NULL = "null"
    INTEGER = "integer"
    REAL = "real"
    TEXT = "text"
    BLOB = "blob"
    BOOLEAN = "boolean"


def canonical_json(tree: Any) -> str:
    """Compact, key-sorted JSON encoding used for arrays/objects stored as TEXT."""
    return json.dumps(
        to_jsonable_python(tree),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def _fits_i64(number: int) -> bool:
    return I64_MIN <= number <= I64_MAX


@dataclass(frozen=True)
class Value:
    """
    A single column value.

    Construct through the named constructors (`Value.integer(5)`), through
    `Value.of` for arbitrary Python objects, or through `Value.from_json` for a
    JSON-shaped tree.
    """

    type: ValueType
    payload: Any = None

    # Constructors

    @classmethod
    def null(cls) -> "Value":
        return cls(ValueType.NULL)

    @classmethod
    def integer(cls, number: int) -> "Value":
        number = int(number)
        if not _fits_i64(number):
            raise ValueError(f"Integer {number} does not fit in 64 bits")
        return cls(ValueType.INTEGER, number)

    @classmethod
    def real(cls, number: float) -> "Value":
        return cls(ValueType.REAL, float(number))

    @classmethod
    def text(cls, string: str) -> "Value":
        return cls(ValueType.TEXT, str(string))

    @classmethod
    def blob(cls, data: bytes) -> "Value":
        return cls(ValueType.BLOB, bytes(data))

    @classmethod
    def boolean(cls, flag: bool) -> "Value":
        return cls(ValueType.BOOLEAN, bool(flag))

    @classmethod
    def of(cls, obj: Any) -> "Value":
        """
        Convert a Python object into a Value.

        Natives map to their obvious variant; bytes-like objects become BLOB;
        anything else (datetimes, UUIDs, enums, nested models) goes through
        pydantic's JSON-able conversion first and then `from_json`.
        """
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return cls.null()
        if isinstance(obj, Enum):
            return cls.of(obj.value)
        if isinstance(obj, bool):
            return cls.boolean(obj)
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return cls.blob(obj)
        if isinstance(obj, (int, float, Decimal, str, list, tuple, dict)):
            return cls.from_json(obj)
        return cls.from_json(to_jsonable_python(obj))

    @classmethod
    def from_json(cls, tree: Any) -> "Value":
        """
        Map a JSON-shaped tree node to a Value. Never fails.

        Arrays and objects collapse to TEXT holding their canonical encoding;
        parsing them back is the caller's business.
        """
        if tree is None:
            return cls.null()
        if isinstance(tree, bool):
            return cls.boolean(tree)
        if isinstance(tree, int):
            if _fits_i64(tree):
                return cls(ValueType.INTEGER, int(tree))
            return cls._from_number(tree)
        if isinstance(tree, Decimal):
            if tree.is_finite() and tree == tree.to_integral_value():
                as_int = int(tree)
                if _fits_i64(as_int) and tree.as_tuple().exponent >= 0:
                    return cls(ValueType.INTEGER, as_int)
            return cls._from_number(tree)
        if isinstance(tree, float):
            return cls._from_number(tree)
        if isinstance(tree, str):
            return cls.text(tree)
        if isinstance(tree, (list, tuple, dict)):
            return cls.text(canonical_json(tree))
        return cls.text(str(tree))

    @classmethod
    def _from_number(cls, number: Any) -> "Value":
        try:
            as_float = float(number)
        except (OverflowError, ValueError):
            return cls.text(str(number))
        if math.isfinite(as_float):
            return cls(ValueType.REAL, as_float)
        return cls.text(str(number))

    # Storage boundary

    @classmethod
    def from_storage(cls, raw: Any, is_boolean: bool = False) -> "Value":
        """
        Wrap a native value returned by the engine.

        Integers become BOOLEAN only when `is_boolean` is set for the column.
        """
        if raw is None:
            return cls.null()
        if isinstance(raw, bool):
            return cls.boolean(raw)
        if isinstance(raw, int):
            if is_boolean:
                return cls.boolean(raw != 0)
            return cls.integer(raw)
        if isinstance(raw, float):
            return cls.real(raw)
        if isinstance(raw, str):
            return cls.text(raw)
        if isinstance(raw, (bytes, bytearray, memoryview)):
            return cls.blob(raw)
        raise SerializationError(f"Unsupported storage value of type {type(raw).__name__}")

    def to_storage(self) -> Any:
        """Native value to bind as a statement parameter; booleans become 0/1."""
        if self.type is ValueType.BOOLEAN:
            return 1 if self.payload else 0
        return self.payload

    # Views

    def to_json(self) -> Any:
        """Inverse of `from_json` for scalar variants; BLOB becomes a list of byte ints."""
        if self.type is ValueType.REAL and not math.isfinite(self.payload):
            return str(self.payload)
        if self.type is ValueType.BLOB:
            return list(self.payload)
        return self.payload

    def to_python(self) -> Any:
        return self.payload

    @property
    def is_null(self) -> bool:
        return self.type is ValueType.NULL

    def __repr__(self) -> str:
        if self.type is ValueType.NULL:
            return "Value.null()"
        return f"Value.{self.type.value}({self.payload!r})"


Row = Dict[str, Value]


class Operator(str, Enum):
    """Comparison operators usable in a `Filter`."""

    EQ = "="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    LIKE = "LIKE"
    NOT_LIKE = "NOT LIKE"
    IN = "IN"
    NOT_IN = "NOT IN"
    IS_NULL = "IS NULL"
    IS_NOT_NULL = "IS NOT NULL"
    BETWEEN = "BETWEEN"
    NOT_BETWEEN = "NOT BETWEEN"

    def __str__(self) -> str:
        return self.value


class Aggregate(str, Enum):
    COUNT = "COUNT"
    SUM = "SUM"
    AVG = "AVG"
    MIN = "MIN"
    MAX = "MAX"

    def __str__(self) -> str:
        return self.value


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"

    def __str__(self) -> str:
        return self.value


class JoinType(str, Enum):
    INNER = "INNER JOIN"
    LEFT = "LEFT JOIN"
    RIGHT = "RIGHT JOIN"
    FULL = "FULL JOIN"

    def __str__(self) -> str:
        return self.value


def parse_bool(value: Any) -> bool:
    """
    Decode a stored boolean.

    Accepts a native bool, any number (zero is False), or one of the
    case-insensitive strings true/1/yes/on and false/0/no/off.

    Raises
    ------
    ValueError
        For any other shape.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    if isinstance(value, str):
        lowered = value.lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise ValueError(f"Invalid string value for boolean: {value}")
    raise ValueError("Expected boolean, integer, or string")


StoredBool = Annotated[bool, BeforeValidator(parse_bool)]


__all__ = [
    "Value",
    "ValueType",
    "Row",
    "Operator",
    "Aggregate",
    "SortOrder",
    "JoinType",
    "parse_bool",
    "StoredBool",
    "canonical_json",
]
