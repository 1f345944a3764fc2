"""
Persisting a metadata dictionary in a container.

Each entry is stored as a dataset named like the key in a dedicated group
next to the image dataset. Persisting and restoring is best-effort:
entries that cannot be represented are skipped, not reported as errors.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, MutableMapping, Optional

import h5py
from typing_extensions import Final

from . import codec
from .errors import AlreadyExists, PathNotFound, RankMismatch, UnrecognizedStorageType
from .paths import SEPARATOR, join_path, path_exists
from .values import MetaValue

logger = logging.getLogger(__name__)

METADATA_GROUP: Final[str] = "ITKMetaData"
"""Name of the group holding the metadata dictionary (next to the image)."""


def metadata_path(path: str) -> str:
    """Return path of the metadata group for images stored in given group."""
    return join_path(path, METADATA_GROUP)


def persist_metadata(group: h5py.Group, metadata: Mapping[str, Any]) -> h5py.Group:
    """Write all supported dictionary entries into a new metadata group.

    Values that are not `MetaValue`s are classified with `MetaValue.of`.
    Returns the created group.
    """
    if METADATA_GROUP in group:
        raise AlreadyExists(f"{METADATA_GROUP}, already exists")
    meta_group = group.create_group(METADATA_GROUP, track_order=True)

    for key, obj in metadata.items():
        if not key or SEPARATOR in key or key in (".", ".."):
            logger.debug("Skipping metadata entry with invalid name: %r", key)
            continue
        value = MetaValue.of(obj)
        if not value.supported:
            logger.debug("Skipping metadata entry %s of type %s", key, type(obj))
            continue
        logger.debug("Creating MetaData dataset: %s/%s", meta_group.name, key)
        codec.write_value(meta_group, key, value)
    return meta_group


def restore_metadata(
    h5file: h5py.Group,
    path: str = SEPARATOR,
    metadata: Optional[MutableMapping[str, Any]] = None,
) -> MutableMapping[str, Any]:
    """Read the metadata group for images in the group at `path`.

    Entries are added to the passed mapping (a new dict if none is given),
    which is returned. Objects that are not one-dimensional datasets of a
    supported type are skipped.
    """
    ret: MutableMapping[str, Any] = {} if metadata is None else metadata
    group_path = metadata_path(path)
    if not path_exists(h5file, group_path):
        raise PathNotFound(f"{METADATA_GROUP} does not exist")
    logger.debug("MetaDataGroupName: %s", group_path)

    meta_group = h5file[group_path]
    for name, node in meta_group.items():
        logger.debug("Reading MetaData item: %s", name)
        if not isinstance(node, h5py.Dataset) or node.ndim != 1:
            continue  # ignore groups and > 1D metadata
        try:
            ret[name] = codec.read_value(node)
        except (UnrecognizedStorageType, RankMismatch) as e:
            logger.debug("Skipping metadata item %s: %s", name, e)
    return ret


def as_python(metadata: Mapping[str, MetaValue]) -> Dict[str, Any]:
    """Return plain values of a restored dictionary (arrays as lists)."""
    return {
        k: v.value.tolist() if v.is_array else v.value for k, v in metadata.items()
    }
