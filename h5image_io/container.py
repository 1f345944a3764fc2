"""
Opening, creating and closing container files.

A `ContainerHandle` owns at most one open `h5py.File` at a time and makes sure
it is closed again, also when an operation fails half way.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import h5py
from typing_extensions import Final, Literal

from .errors import ContainerIOFailure, NotAContainer, NotFound, translated_errors

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: Final[Tuple[str, ...]] = (
    ".hdf",
    ".h4",
    ".hdf4",
    ".h5",
    ".hdf5",
    ".he4",
    ".he5",
    ".hd5",
)
"""File name extensions accepted for reading and writing."""

LIBVER_BOUNDS: Final[Tuple[str, str]] = ("v108", "v108")
"""File format version bounds for written files (readable by HDF5 1.8)."""

PathLike = Union[str, Path]

OpenMode = Literal["r", "r+", "w"]


def has_supported_extension(filename: PathLike) -> bool:
    """Return whether the file name has one of the supported extensions."""
    return str(filename).lower().endswith(SUPPORTED_EXTENSIONS)


def is_container(filename: PathLike) -> bool:
    """Return whether the HDF5 signature probe accepts the file (never raises)."""
    try:
        return bool(h5py.is_hdf5(str(filename)))
    except Exception as e:
        logger.debug("Signature probe of %s failed: %s", filename, e)
        return False


def can_read(filename: PathLike) -> bool:
    """Return whether the file exists and can be opened as container.

    Never raises, any failure results in `False`.
    """
    try:
        if not Path(filename).is_file() or not is_container(filename):
            return False
        with h5py.File(filename, "r"):
            return True
    except Exception as e:
        logger.debug("Cannot open %s read-only: %s", filename, e)
        return False


def open_for_read(filename: PathLike) -> h5py.File:
    """Open an existing container read-only."""
    if not Path(filename).exists():
        raise NotFound(f"File does not exist: {filename}")
    if not is_container(filename):
        raise NotAContainer(f"Not an HDF5 container: {filename}")
    with translated_errors(f"Cannot open {filename}"):
        return h5py.File(filename, "r")


def open_for_write(filename: PathLike, truncate: bool = False) -> h5py.File:
    """Open a container for writing.

    Creates the file if it does not exist, otherwise reopens it in read/write
    mode. The contents of an existing file are only discarded if `truncate`
    is requested explicitly.
    """
    exists = Path(filename).exists()
    mode: OpenMode = "w" if truncate or not exists else "r+"
    with translated_errors(f"Cannot open {filename} for writing"):
        if mode == "w":
            logger.debug("Creating container %s", filename)
        return h5py.File(filename, mode, libver=LIBVER_BOUNDS)


class ContainerHandle:
    """Exclusive owner of (at most) one open container file."""

    _file: Optional[h5py.File]

    def __init__(self):
        self._file = None

    @property
    def is_open(self) -> bool:
        return self._file is not None and bool(self._file)

    @property
    def file(self) -> h5py.File:
        """Return the open file."""
        if not self.is_open:
            raise ContainerIOFailure("Container is not open!")
        return self._file

    def open_read(self, filename: PathLike) -> h5py.File:
        """Close the current file, then open given container read-only."""
        self.close()
        self._file = open_for_read(filename)
        return self._file

    def open_write(self, filename: PathLike, truncate: bool = False) -> h5py.File:
        """Close the current file, then open given container for writing."""
        self.close()
        self._file = open_for_write(filename, truncate=truncate)
        return self._file

    def close(self) -> None:
        """Close the current file (if any)."""
        if self._file is None:
            return
        f, self._file = self._file, None
        if f:
            f.close()

    def __repr__(self):
        return f"<ContainerHandle {self._file!r}>"

    # ---- context manager support (i.e. to use `with`) ----

    def __enter__(self):
        return self

    def __exit__(self, ex_type, ex_value, ex_traceback):
        self.close()
