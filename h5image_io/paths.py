"""
Helpers for logical paths inside a container.

Provides syntactic path transformations and the on-demand creation of the group
hierarchy an image dataset lives in.
"""
from __future__ import annotations

import logging
from typing import List

import h5py

from .errors import ContainerIOFailure, translated_errors

logger = logging.getLogger(__name__)

SEPARATOR = "/"


def elements_of(path: str) -> List[str]:
    """Return the non-empty segments of a slash-separated path.

    Leading, trailing and repeated separators are ignored, i.e.
    `"/a//b/"` has the elements `["a", "b"]`.
    """
    return [seg for seg in path.split(SEPARATOR) if seg]


def join_path(*parts: str) -> str:
    """Return normalized absolute path consisting of the elements of all parts."""
    segs: List[str] = []
    for part in parts:
        segs += elements_of(part)
    return SEPARATOR + SEPARATOR.join(segs)


def parent_path(path: str) -> str:
    """Return normalized path of the group containing the given path."""
    return join_path(*elements_of(path)[:-1])


def path_exists(h5file: h5py.Group, path: str) -> bool:
    """Return whether a path exists in an open container.

    Never raises, any problem reported by HDF5 is treated as non-existence.
    """
    try:
        return join_path(path) in h5file
    except Exception as e:
        logger.debug("Existence check of %s failed: %s", path, e)
        return False


def ensure_group(h5file: h5py.Group, path: str) -> h5py.Group:
    """Return the group at the given path, creating missing groups on the way.

    Calling it repeatedly with the same path does not create anything new.
    """
    prefix = ""
    with translated_errors(f"Cannot create group {path}"):
        for seg in elements_of(path):
            prefix += SEPARATOR + seg
            if path_exists(h5file, prefix):
                if not isinstance(h5file[prefix], h5py.Group):
                    raise ContainerIOFailure(f"{prefix} exists, but is not a group")
                continue
            h5file.create_group(prefix)
            logger.debug("Created group: %s", prefix)
        return h5file[join_path(path)]
