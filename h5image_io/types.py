"""Mapping between image component kinds and HDF5 storage types.

HDF5 (and numpy on top of it) has a narrower set of distinct integer types
than the component kinds an image can be declared with, e.g. on 64 bit
platforms `long` and `long long` are both stored as 64 bit integers.
The on-disk identity of a type is therefore a pair of a storage dtype and an
optional tag attribute attached to the stored object.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple, Union

import numpy as np

from .errors import UnrecognizedStorageType, UnsupportedType


class ComponentType(str, Enum):
    """Component (pixel sample) type of an image."""

    UCHAR = "uchar"
    CHAR = "char"
    USHORT = "ushort"
    SHORT = "short"
    UINT = "uint"
    INT = "int"
    ULONG = "ulong"
    LONG = "long"
    ULONGLONG = "ulonglong"
    LONGLONG = "longlong"
    FLOAT = "float"
    DOUBLE = "double"
    LDOUBLE = "ldouble"
    UNKNOWN = "unknown"

    def __repr__(self) -> str:
        return f"{type(self).__name__}.{self.name}"


class TypeTag(str, Enum):
    """Names of the boolean side attributes disambiguating a storage type."""

    BOOL = "isBool"
    LONG = "isLong"
    ULONG = "isUnsignedLong"
    LLONG = "isLLong"
    ULLONG = "isULLong"


class StorageType(NamedTuple):
    """On-disk identity of a type: storage dtype and optional tag."""

    dtype: np.dtype
    tag: Optional[TypeTag] = None


DTypeKey = Tuple[str, int]
"""Byte order independent identity of a numpy dtype (kind, itemsize)."""


def dtype_key(dtype: Union[np.dtype, type, str]) -> DTypeKey:
    dt = np.dtype(dtype)
    return (dt.kind, dt.itemsize)


_STORAGE: Dict[ComponentType, StorageType] = {
    ComponentType.CHAR: StorageType(np.dtype(np.int8)),
    ComponentType.UCHAR: StorageType(np.dtype(np.uint8)),
    ComponentType.SHORT: StorageType(np.dtype(np.int16)),
    ComponentType.USHORT: StorageType(np.dtype(np.uint16)),
    ComponentType.INT: StorageType(np.dtype(np.int32)),
    ComponentType.UINT: StorageType(np.dtype(np.uint32)),
    ComponentType.LONG: StorageType(np.dtype(np.int64)),
    ComponentType.ULONG: StorageType(np.dtype(np.uint64)),
    ComponentType.LONGLONG: StorageType(np.dtype(np.int64), TypeTag.LLONG),
    ComponentType.ULONGLONG: StorageType(np.dtype(np.uint64), TypeTag.ULLONG),
    ComponentType.FLOAT: StorageType(np.dtype(np.float32)),
    ComponentType.DOUBLE: StorageType(np.dtype(np.float64)),
}

SUPPORTED_COMPONENT_TYPES: Tuple[ComponentType, ...] = tuple(_STORAGE.keys())
"""Component types that can be stored in a container."""

# per storage dtype: tags to check in order of precedence, then the natural kind
_DECODE: Dict[DTypeKey, Tuple[List[Tuple[TypeTag, ComponentType]], ComponentType]] = {
    dtype_key(np.int8): ([], ComponentType.CHAR),
    dtype_key(np.uint8): ([], ComponentType.UCHAR),
    dtype_key(np.int16): ([], ComponentType.SHORT),
    dtype_key(np.uint16): ([], ComponentType.USHORT),
    dtype_key(np.int32): ([], ComponentType.INT),
    dtype_key(np.uint32): ([], ComponentType.UINT),
    dtype_key(np.int64): ([(TypeTag.LLONG, ComponentType.LONGLONG)], ComponentType.LONG),
    dtype_key(np.uint64): (
        [(TypeTag.ULLONG, ComponentType.ULONGLONG)],
        ComponentType.ULONG,
    ),
    dtype_key(np.float32): ([], ComponentType.FLOAT),
    dtype_key(np.float64): ([], ComponentType.DOUBLE),
}


def to_storage_type(kind: ComponentType) -> StorageType:
    """Return the storage identity for a component type.

    Raises UnsupportedType if the kind has no native HDF5 counterpart.
    """
    try:
        return _STORAGE[ComponentType(kind)]
    except (KeyError, ValueError):
        raise UnsupportedType(f"Unsupported component type: {kind!r}")


def from_storage_type(
    dtype: Union[np.dtype, type, str], tags: Iterable[TypeTag] = ()
) -> ComponentType:
    """Return the component type for a storage dtype and the tags present.

    Raises UnrecognizedStorageType for dtypes outside of the supported set.
    """
    try:
        dt = np.dtype(dtype)
    except TypeError:
        raise UnrecognizedStorageType(f"Not a storage type: {dtype!r}")
    entry = _DECODE.get(dtype_key(dt)) if dt.fields is None else None
    if entry is None:
        raise UnrecognizedStorageType(f"Unsupported HDF5 data type: {dt}")

    present = set(tags)
    tagged, natural = entry
    for tag, kind in tagged:
        if tag in present:
            return kind
    return natural


def component_type_of(obj: Union[np.ndarray, np.dtype, type, str]) -> ComponentType:
    """Classify an array (or dtype) by its element type, ignoring tags."""
    return from_storage_type(obj.dtype if isinstance(obj, np.ndarray) else obj)


def component_type_name(kind: ComponentType) -> str:
    """Return upper case name of the component type (as shown to users)."""
    return ComponentType(kind).name
