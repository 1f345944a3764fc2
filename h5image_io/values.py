"""Typed metadata values.

A metadata dictionary maps names to values of various scalar and array types.
Python does not distinguish integer widths, so values are classified into a
`MetaValue`, a tagged variant recording the exact kind a value is stored as.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Sequence

import numpy as np


class MetaKind(str, Enum):
    """Kind of a metadata value (element type for arrays)."""

    BOOL = "bool"
    CHAR = "char"
    UCHAR = "uchar"
    SHORT = "short"
    USHORT = "ushort"
    INT = "int"
    UINT = "uint"
    LONG = "long"
    ULONG = "ulong"
    LONGLONG = "longlong"
    ULONGLONG = "ulonglong"
    FLOAT = "float"
    DOUBLE = "double"
    STRING = "string"
    UNSUPPORTED = "unsupported"

    def __repr__(self) -> str:
        return f"{type(self).__name__}.{self.name}"

    @property
    def is_numeric(self) -> bool:
        return self in NUMERIC_DTYPES


NUMERIC_DTYPES: Dict[MetaKind, np.dtype] = {
    MetaKind.CHAR: np.dtype(np.int8),
    MetaKind.UCHAR: np.dtype(np.uint8),
    MetaKind.SHORT: np.dtype(np.int16),
    MetaKind.USHORT: np.dtype(np.uint16),
    MetaKind.INT: np.dtype(np.int32),
    MetaKind.UINT: np.dtype(np.uint32),
    MetaKind.LONG: np.dtype(np.int64),
    MetaKind.ULONG: np.dtype(np.uint64),
    MetaKind.LONGLONG: np.dtype(np.int64),
    MetaKind.ULONGLONG: np.dtype(np.uint64),
    MetaKind.FLOAT: np.dtype(np.float32),
    MetaKind.DOUBLE: np.dtype(np.float64),
}
"""In-memory element dtype of the numeric kinds."""

# classification of numpy dtypes (the widest kind for each 64 bit dtype
# would be ambiguous, plain numpy values count as LONG / ULONG)
_KIND_OF_DTYPE: Dict[str, MetaKind] = {
    "i1": MetaKind.CHAR,
    "u1": MetaKind.UCHAR,
    "i2": MetaKind.SHORT,
    "u2": MetaKind.USHORT,
    "i4": MetaKind.INT,
    "u4": MetaKind.UINT,
    "i8": MetaKind.LONG,
    "u8": MetaKind.ULONG,
    "f4": MetaKind.FLOAT,
    "f8": MetaKind.DOUBLE,
}

_INT64 = np.iinfo(np.int64)
_UINT64 = np.iinfo(np.uint64)


def _kind_of_dtype(dtype: np.dtype) -> Optional[MetaKind]:
    return _KIND_OF_DTYPE.get(f"{dtype.kind}{dtype.itemsize}")


@dataclass(frozen=True, eq=False)
class MetaValue:
    """A metadata value together with the kind it is stored as.

    Scalars are held as plain Python `bool`, `int`, `float` or `str`,
    arrays as one-dimensional numpy arrays with the dtype of the kind.
    Use `MetaValue.of` to classify arbitrary objects.
    """

    kind: MetaKind
    value: Any
    is_array: bool = False

    def __post_init__(self):
        if self.kind == MetaKind.UNSUPPORTED:
            return
        if self.is_array:
            if not self.kind.is_numeric:
                raise ValueError(f"Arrays of {self.kind.value} are not supported!")
            arr = np.asarray(self.value, dtype=NUMERIC_DTYPES[self.kind])
            if arr.ndim != 1:
                raise ValueError("Metadata arrays must be one-dimensional!")
            object.__setattr__(self, "value", arr)
        else:
            object.__setattr__(self, "value", _normalize_scalar(self.kind, self.value))

    @property
    def supported(self) -> bool:
        return self.kind != MetaKind.UNSUPPORTED

    @classmethod
    def scalar(cls, kind: MetaKind, value: Any) -> MetaValue:
        return cls(MetaKind(kind), value)

    @classmethod
    def array(cls, kind: MetaKind, values: Sequence[Any]) -> MetaValue:
        return cls(MetaKind(kind), values, is_array=True)

    @classmethod
    def unsupported(cls, value: Any) -> MetaValue:
        return cls(MetaKind.UNSUPPORTED, value)

    @classmethod
    def of(cls, obj: Any) -> MetaValue:
        """Classify a value, returning an UNSUPPORTED value if it cannot be stored."""
        if isinstance(obj, MetaValue):
            return obj
        if isinstance(obj, (bool, np.bool_)):
            return cls(MetaKind.BOOL, obj)
        if isinstance(obj, str):
            return cls(MetaKind.STRING, obj)
        if isinstance(obj, bytes):  # C-style string
            try:
                return cls(MetaKind.STRING, obj.decode("utf-8"))
            except UnicodeDecodeError:
                return cls.unsupported(obj)
        if isinstance(obj, np.generic):
            kind = _kind_of_dtype(obj.dtype)
            return cls(kind, obj) if kind else cls.unsupported(obj)
        if isinstance(obj, int):
            if _INT64.min <= obj <= _INT64.max:
                return cls(MetaKind.LONG, obj)
            if 0 <= obj <= _UINT64.max:
                return cls(MetaKind.ULONG, obj)
            return cls.unsupported(obj)
        if isinstance(obj, float):
            return cls(MetaKind.DOUBLE, obj)
        if isinstance(obj, (np.ndarray, list, tuple)):
            return cls._of_sequence(obj)
        return cls.unsupported(obj)

    @classmethod
    def _of_sequence(cls, obj: Any) -> MetaValue:
        if isinstance(obj, (list, tuple)) and any(
            isinstance(x, (bool, np.bool_)) for x in obj
        ):
            return cls.unsupported(obj)
        try:
            arr = np.asarray(obj)
        except (ValueError, OverflowError):
            return cls.unsupported(obj)
        kind = _kind_of_dtype(arr.dtype)
        if kind is None or arr.ndim != 1:
            return cls.unsupported(obj)
        return cls(kind, arr, is_array=True)

    def __len__(self) -> int:
        return len(self.value) if self.is_array else 1

    def __eq__(self, other) -> bool:
        if not isinstance(other, MetaValue):
            return NotImplemented
        if (self.kind, self.is_array) != (other.kind, other.is_array):
            return False
        if self.is_array:
            return bool(np.array_equal(self.value, other.value))
        return bool(self.value == other.value)

    def __repr__(self) -> str:
        val = self.value.tolist() if self.is_array else self.value
        arr = "[]" if self.is_array else ""
        return f"MetaValue({self.kind.value}{arr}: {val!r})"


def _normalize_scalar(kind: MetaKind, value: Any) -> Any:
    """Convert a scalar to the plain Python value representable by the kind."""
    if kind == MetaKind.BOOL:
        return bool(value)
    if kind == MetaKind.STRING:
        return value.decode("utf-8") if isinstance(value, bytes) else str(value)
    dtype = NUMERIC_DTYPES[kind]
    if dtype.kind == "f":
        return float(dtype.type(value))
    info = np.iinfo(dtype)
    ival = int(value)
    if not (info.min <= ival <= info.max):
        raise OverflowError(f"{ival} out of range for {kind.value}")
    return ival
