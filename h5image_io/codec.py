"""
Serialization of scalars, vectors and strings into a container.

Values are stored either as small datasets (addressable by a path, used for
metadata) or as attributes attached to a dataset (used for the geometry).

HDF5 can't distinguish e.g. a boolean from a small integer or a `long` from a
plain `int`, so the affected kinds get a one-element boolean tag attribute
(see `TypeTag`), which is consulted on read.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Set, Tuple, Union

import h5py
import numpy as np
from typing_extensions import Final

from .errors import AlreadyExists, RankMismatch, UnrecognizedStorageType
from .types import DTypeKey, StorageType, TypeTag, dtype_key
from .values import MetaKind, MetaValue

logger = logging.getLogger(__name__)

HBOOL: Final[np.dtype] = np.dtype(np.uint8)
"""Storage type of booleans (same as the native HDF5 boolean)."""

H5Object = Union[h5py.Dataset, h5py.Group]

_STORAGE: Dict[MetaKind, StorageType] = {
    MetaKind.BOOL: StorageType(HBOOL, TypeTag.BOOL),
    MetaKind.CHAR: StorageType(np.dtype(np.int8)),
    MetaKind.UCHAR: StorageType(np.dtype(np.uint8)),
    MetaKind.SHORT: StorageType(np.dtype(np.int16)),
    MetaKind.USHORT: StorageType(np.dtype(np.uint16)),
    MetaKind.INT: StorageType(np.dtype(np.int32)),
    MetaKind.UINT: StorageType(np.dtype(np.uint32)),
    MetaKind.LONG: StorageType(np.dtype(np.int32), TypeTag.LONG),
    MetaKind.ULONG: StorageType(np.dtype(np.uint32), TypeTag.ULONG),
    MetaKind.LONGLONG: StorageType(np.dtype(np.int64), TypeTag.LLONG),
    MetaKind.ULONGLONG: StorageType(np.dtype(np.uint64), TypeTag.ULLONG),
    MetaKind.FLOAT: StorageType(np.dtype(np.float32)),
    MetaKind.DOUBLE: StorageType(np.dtype(np.float64)),
}

# long / unsigned long fall back to 64 bit storage if values don't fit
_WIDE: Dict[MetaKind, np.dtype] = {
    MetaKind.LONG: np.dtype(np.int64),
    MetaKind.ULONG: np.dtype(np.uint64),
}

# tags to check in order of precedence, then the natural kind of the dtype
_DECODE: Dict[DTypeKey, Tuple[List[Tuple[TypeTag, MetaKind]], MetaKind]] = {
    dtype_key(np.int8): ([], MetaKind.CHAR),
    dtype_key(np.uint8): ([(TypeTag.BOOL, MetaKind.BOOL)], MetaKind.UCHAR),
    dtype_key(np.int16): ([], MetaKind.SHORT),
    dtype_key(np.uint16): ([], MetaKind.USHORT),
    dtype_key(np.int32): (
        [
            (TypeTag.BOOL, MetaKind.BOOL),
            (TypeTag.LONG, MetaKind.LONG),
            (TypeTag.ULONG, MetaKind.ULONG),
        ],
        MetaKind.INT,
    ),
    dtype_key(np.uint32): ([(TypeTag.ULONG, MetaKind.ULONG)], MetaKind.UINT),
    dtype_key(np.int64): (
        [(TypeTag.LLONG, MetaKind.LONGLONG), (TypeTag.LONG, MetaKind.LONG)],
        MetaKind.LONG,
    ),
    dtype_key(np.uint64): (
        [(TypeTag.ULLONG, MetaKind.ULONGLONG), (TypeTag.ULONG, MetaKind.ULONG)],
        MetaKind.ULONG,
    ),
    dtype_key(np.float32): ([], MetaKind.FLOAT),
    dtype_key(np.float64): ([], MetaKind.DOUBLE),
}


def storage_type_for(value: MetaValue) -> StorageType:
    """Return storage dtype and tag to be used for a metadata value."""
    st = _STORAGE[value.kind]
    if value.kind in _WIDE:
        info = np.iinfo(st.dtype)
        vals = np.atleast_1d(np.asarray(value.value, dtype=_WIDE[value.kind]))
        if vals.size and (vals.min() < info.min or vals.max() > info.max):
            return StorageType(_WIDE[value.kind], st.tag)
    return st


def is_string_type(dtype: np.dtype) -> bool:
    return h5py.check_string_dtype(dtype) is not None


def kind_of(dtype: np.dtype, tags: Set[TypeTag]) -> MetaKind:
    """Decode the kind of a stored value from its dtype and tags.

    Raises UnrecognizedStorageType if the dtype is not supported.
    """
    if is_string_type(dtype):
        return MetaKind.STRING
    entry = _DECODE.get(dtype_key(dtype)) if dtype.fields is None else None
    if entry is None:
        raise UnrecognizedStorageType(f"Unsupported HDF5 data type: {dtype}")
    tagged, natural = entry
    for tag, kind in tagged:
        if tag in tags:
            return kind
    return natural


# ---- tags ----


def write_tag(obj: H5Object, tag: TypeTag) -> None:
    """Attach a one-element boolean tag attribute."""
    write_bool_attr(obj, tag.value, True)


def read_tags(obj: H5Object) -> Set[TypeTag]:
    """Return the type tags present on an object."""
    return {tag for tag in TypeTag if tag.value in obj.attrs}


# ---- datasets ----


def _require_1d(name: str, shape):
    if shape is None or len(shape) != 1:
        raise RankMismatch(f"Wrong number of dimensions for {name}: {shape}")


def write_scalar(group: h5py.Group, path: str, value: MetaValue) -> h5py.Dataset:
    """Write a scalar as a one-element dataset (with tag, if needed)."""
    if value.is_array:
        raise ValueError("Expected a scalar value!")
    if value.kind == MetaKind.STRING:
        return write_string(group, path, value.value)
    st = storage_type_for(value)
    ds = group.create_dataset(path, shape=(1,), dtype=st.dtype)
    if st.tag is not None:
        write_tag(ds, st.tag)
    ds[0] = value.value
    return ds


def write_vector(group: h5py.Group, path: str, value: MetaValue) -> h5py.Dataset:
    """Write an array as a one-dimensional dataset (with tag, if needed)."""
    if not value.is_array:
        raise ValueError("Expected an array value!")
    st = storage_type_for(value)
    ds = group.create_dataset(path, data=value.value.astype(st.dtype))
    if st.tag is not None:
        write_tag(ds, st.tag)
    return ds


def write_string(group: h5py.Group, path: str, value: str) -> h5py.Dataset:
    """Write a string as a one-element variable-length string dataset."""
    ds = group.create_dataset(path, shape=(1,), dtype=h5py.string_dtype("utf-8"))
    ds[0] = value
    return ds


def write_value(group: h5py.Group, path: str, value: MetaValue) -> h5py.Dataset:
    """Write any supported metadata value."""
    if not value.supported:
        raise ValueError(f"Cannot store unsupported value: {value!r}")
    logger.debug("Writing %s to %s", value, path)
    if value.is_array:
        return write_vector(group, path, value)
    return write_scalar(group, path, value)


def read_scalar(ds: h5py.Dataset) -> MetaValue:
    """Read a value stored by `write_scalar`."""
    _require_1d(ds.name, ds.shape)
    if ds.shape[0] != 1:
        raise RankMismatch(f"Elements > 1 for scalar type in {ds.name}")
    kind = kind_of(ds.dtype, read_tags(ds))
    if kind == MetaKind.STRING:
        return MetaValue(kind, ds.asstr()[0])
    return MetaValue(kind, ds[0])


def read_vector(ds: h5py.Dataset) -> MetaValue:
    """Read a value stored by `write_vector`."""
    _require_1d(ds.name, ds.shape)
    kind = kind_of(ds.dtype, read_tags(ds))
    if not kind.is_numeric:
        raise UnrecognizedStorageType(f"Cannot read {kind.value} array: {ds.name}")
    return MetaValue(kind, ds[()], is_array=True)


def read_string(ds: h5py.Dataset) -> str:
    """Read a string stored by `write_string`."""
    if not is_string_type(ds.dtype):
        raise UnrecognizedStorageType(f"Not a string dataset: {ds.name}")
    return read_scalar(ds).value


def read_value(ds: h5py.Dataset) -> MetaValue:
    """Read a one-dimensional dataset, as scalar if it has exactly one element."""
    _require_1d(ds.name, ds.shape)
    if ds.shape[0] == 1:
        return read_scalar(ds)
    return read_vector(ds)


# ---- attributes ----


def _guard_new_attr(obj: H5Object, name: str):
    if name in obj.attrs:
        raise AlreadyExists(f"DataSet attribute already exists: {name}")


def write_bool_attr(obj: H5Object, name: str, value: bool) -> None:
    """Attach a one-element boolean attribute."""
    _guard_new_attr(obj, name)
    obj.attrs.create(name, np.array([bool(value)], dtype=HBOOL), dtype=HBOOL)


def write_vector_attr(
    obj: H5Object, name: str, values: Sequence, dtype: np.dtype
) -> None:
    """Attach a one-dimensional numeric attribute."""
    _guard_new_attr(obj, name)
    obj.attrs.create(name, np.asarray(values, dtype=dtype).reshape(-1), dtype=dtype)


def read_vector_attr(obj: H5Object, name: str, dtype: np.dtype) -> np.ndarray:
    """Read a one-dimensional numeric attribute, converted to the given dtype."""
    attr = obj.attrs.get_id(name)
    _require_1d(name, attr.shape)
    return np.asarray(obj.attrs[name], dtype=dtype).reshape(-1)


def write_matrix_attr(obj: H5Object, name: str, rows: Sequence[Sequence[float]]):
    """Attach a two-dimensional double attribute (row by row)."""
    _guard_new_attr(obj, name)
    mat = np.asarray(rows, dtype=np.float64)
    if mat.ndim != 2:
        raise RankMismatch(f"Expected a matrix for {name}, got shape {mat.shape}")
    obj.attrs.create(name, mat, dtype=np.float64)


def read_matrix_attr(obj: H5Object, name: str) -> np.ndarray:
    """Read a two-dimensional floating point attribute as doubles."""
    attr = obj.attrs.get_id(name)
    if attr.shape is None or len(attr.shape) != 2:
        raise RankMismatch(f"Wrong number of dims for {name}: {attr.shape}")
    if attr.dtype.kind != "f":
        raise UnrecognizedStorageType(f"Expected floating point {name}: {attr.dtype}")
    return np.asarray(obj.attrs[name], dtype=np.float64)

