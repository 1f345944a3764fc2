"""
Reading and writing images stored in an HDF5 container.

`ContainerImageIO` ties the pieces together: it opens the container, locates
the image dataset, reconstructs geometry and metadata and performs (partial)
reads and writes of the voxel data.

Typical use for reading:

    with ContainerImageIO("image.h5", path="/scan") as io:
        io.read_image_information()
        voxels = io.read()

and for writing:

    with ContainerImageIO("image.h5", use_metadata=True) as io:
        io.set_image(array, spacing=[0.5, 0.5, 2.0])
        io.metadata["Modality"] = "CT"
        io.write(array)
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import h5py
import numpy as np

from . import codec
from .container import ContainerHandle, PathLike, can_read, has_supported_extension
from .errors import (
    AlreadyExists,
    DimensionMismatch,
    NotFound,
    PathNotFound,
    public_entry,
    translated_errors,
)
from .geometry import Geometry, read_geometry, write_geometry
from .metadata import METADATA_GROUP, persist_metadata, restore_metadata
from .paths import elements_of, ensure_group, parent_path, path_exists
from .settings import ContainerSettings
from .streaming import Hyperslab, IORegion, select_hyperslab
from .types import (
    ComponentType,
    component_type_name,
    component_type_of,
    from_storage_type,
    to_storage_type,
)

logger = logging.getLogger(__name__)


class ContainerImageIO:
    """Read and write an image dataset (plus geometry and metadata) in a container.

    Not thread-safe: use one object per concurrent operation.
    """

    settings: ContainerSettings
    filename: Optional[Path]

    component_type: ComponentType
    geometry: Geometry
    io_region: Optional[IORegion]
    metadata: Dict[str, Any]

    def __init__(
        self,
        filename: Optional[PathLike] = None,
        settings: Optional[ContainerSettings] = None,
        **kwargs,
    ):
        if settings is not None and kwargs:
            raise ValueError("Pass either a settings object or setting fields!")
        self.settings = settings or ContainerSettings(**kwargs)
        self.filename = Path(filename) if filename is not None else None

        self._handle = ContainerHandle()
        self._image_information_written = False

        self.component_type = ComponentType.UNKNOWN
        self.geometry = Geometry()
        self.io_region = None
        self.metadata = {}

    # ---- image properties ----

    @property
    def number_of_dimensions(self) -> int:
        return self.geometry.ndim

    def set_number_of_dimensions(self, ndim: int) -> None:
        """Reset the geometry to the default geometry of given dimensionality."""
        ncomp = self.geometry.number_of_components
        self.geometry = Geometry.default(ndim)
        self.geometry.number_of_components = ncomp

    @property
    def dimensions(self) -> List[int]:
        return self.geometry.dimensions

    @dimensions.setter
    def dimensions(self, value: Sequence[int]):
        if len(value) != self.number_of_dimensions:
            self.set_number_of_dimensions(len(value))
        self.geometry.dimensions = [int(v) for v in value]

    @property
    def origin(self) -> List[float]:
        return self.geometry.origin

    @origin.setter
    def origin(self, value: Sequence[float]):
        self.geometry.origin = [float(v) for v in value]

    @property
    def spacing(self) -> List[float]:
        return self.geometry.spacing

    @spacing.setter
    def spacing(self, value: Sequence[float]):
        self.geometry.spacing = [float(v) for v in value]

    @property
    def direction(self) -> List[List[float]]:
        return self.geometry.direction

    @direction.setter
    def direction(self, value: Sequence[Sequence[float]]):
        self.geometry.direction = [[float(v) for v in row] for row in value]

    @property
    def number_of_components(self) -> int:
        return self.geometry.number_of_components

    @number_of_components.setter
    def number_of_components(self, value: int):
        self.geometry.number_of_components = int(value)

    @property
    def use_inferred_dimensions(self) -> bool:
        """True if the last read image had no `Dimension` attribute."""
        return self.geometry.inferred

    def set_image(
        self,
        array: np.ndarray,
        *,
        number_of_components: int = 1,
        origin: Optional[Sequence[float]] = None,
        spacing: Optional[Sequence[float]] = None,
        direction: Optional[Sequence[Sequence[float]]] = None,
    ) -> None:
        """Set up image information for writing an array in storage order.

        The array shape is interpreted slowest moving axis first, followed by
        the component axis if `number_of_components` > 1.
        """
        shape = list(array.shape)
        if number_of_components > 1:
            if not shape or shape[-1] != number_of_components:
                msg = f"Last axis of {array.shape} must have {number_of_components}"
                raise DimensionMismatch(msg)
            shape.pop()
        self.component_type = component_type_of(array)
        self.set_number_of_dimensions(len(shape))
        self.number_of_components = number_of_components
        self.dimensions = list(reversed(shape))
        if origin is not None:
            self.origin = origin
        if spacing is not None:
            self.spacing = spacing
        if direction is not None:
            self.direction = direction
        self.io_region = IORegion.largest(self.dimensions)

    # ---- file checks ----

    def can_read_file(self, filename: PathLike) -> bool:
        """Return whether the file can be read (never raises)."""
        return can_read(filename)

    def can_write_file(self, filename: PathLike) -> bool:
        """Return whether the file name has a supported extension."""
        return has_supported_extension(filename)

    def _require_filename(self) -> Path:
        if self.filename is None:
            raise NotFound("No file name set!")
        return self.filename

    @property
    def dataset_path(self) -> str:
        return self.settings.dataset_path

    def _dataset(self) -> h5py.Dataset:
        f = self._handle.file
        path = self.dataset_path
        if not path_exists(f, path) or not isinstance(f[path], h5py.Dataset):
            raise PathNotFound(f"DataSet {path} does not exist")
        return f[path]

    def dataset_exists(self) -> bool:
        """Return whether the image dataset exists in the file (never raises)."""
        try:
            filename = self._require_filename()
            self._handle.close()
            if not filename.exists():
                return False
            f = self._handle.open_read(filename)
            if not path_exists(f, self.settings.path):
                return False
            return isinstance(f.get(self.dataset_path), h5py.Dataset)
        except Exception as e:
            logger.debug("Dataset existence check failed: %s", e)
            return False
        finally:
            self._handle.close()

    # ---- reading ----

    @public_entry
    def read_image_information(self) -> None:
        """Read component type, geometry and (optionally) metadata."""
        try:
            f = self._handle.open_read(self._require_filename())
            if not path_exists(f, self.settings.path):
                raise PathNotFound(f"{self.settings.path} does not exist")

            ds = self._dataset()
            self.component_type = from_storage_type(ds.dtype, codec.read_tags(ds))
            logger.debug("Component Type: %s", self.component_type.name)
            self.geometry = read_geometry(ds, self.settings, prior=self.geometry)
            self.io_region = IORegion.largest(self.dimensions)

            # clear, as the object may be re-used
            self.metadata.clear()
            if self.settings.use_metadata:
                restore_metadata(f, self.settings.path, self.metadata)
        except BaseException:
            self._handle.close()
            raise
        logger.debug("%s", self.describe())

    def _hyperslab(self) -> Hyperslab:
        region = self.io_region or IORegion.largest(self.dimensions)
        s = self.settings
        return select_hyperslab(
            region,
            self.number_of_dimensions,
            self.number_of_components,
            offset=s.offset_override,
            size=s.size_override,
            stride=s.stride_override,
        )

    @public_entry
    def read(self, buffer: Optional[np.ndarray] = None) -> np.ndarray:
        """Read the voxels of the current IO region.

        Returns an array in storage order (slowest moving axis first,
        components last). If a buffer is passed, it is filled and returned.
        """
        try:
            if not self._handle.is_open:
                self._handle.open_read(self._require_filename())
            ds = self._dataset()
            slab = self._hyperslab()
            logger.debug("regionToRead: %s", self.io_region)
            slab.check_extent(ds.shape)
            data = ds[slab.selection]
        except BaseException:
            self._handle.close()
            raise
        if buffer is None:
            return data
        if buffer.size != data.size:
            msg = f"Buffer of size {buffer.size} can't hold {data.shape} region"
            raise DimensionMismatch(msg)
        buffer[...] = data.reshape(buffer.shape)
        return buffer

    # ---- writing ----

    def _prepare_group(self, f: h5py.File) -> h5py.Group:
        meta_group = ensure_group(f, self.settings.path)
        group = ensure_group(f, parent_path(self.dataset_path))
        name = elements_of(self.dataset_path)[-1]

        if name in group:
            if not self.settings.overwrite:
                raise AlreadyExists(f"DataSet: {self.dataset_path}, already exists")
            del group[name]
        if METADATA_GROUP in meta_group:
            if self.settings.overwrite:
                del meta_group[METADATA_GROUP]
            elif self.settings.use_metadata:
                raise AlreadyExists(f"{METADATA_GROUP}, already exists")
        return group

    @public_entry
    def write_image_information(self) -> None:
        """Create the image dataset with geometry and metadata.

        Does nothing if the image information was already written.
        """
        if self._image_information_written:
            return

        try:
            f = self._handle.open_write(
                self._require_filename(), truncate=self.settings.recreate
            )
            group = self._prepare_group(f)

            storage = to_storage_type(self.component_type)
            self.geometry.check()
            shape = tuple(self.geometry.storage_shape)
            kwargs: Dict[str, Any] = {}
            if self.settings.use_compression:
                kwargs["compression"] = "gzip"
                kwargs["compression_opts"] = self.settings.compression_level
            if self.settings.use_chunking and shape and all(shape):
                # one slice along the slowest moving axis per chunk
                kwargs["chunks"] = (1,) + shape[1:]

            name = elements_of(self.dataset_path)[-1]
            ds = group.create_dataset(name, shape=shape, dtype=storage.dtype, **kwargs)
            if storage.tag is not None:
                codec.write_tag(ds, storage.tag)
            write_geometry(ds, self.geometry)

            if self.settings.use_metadata:
                persist_metadata(ensure_group(f, self.settings.path), self.metadata)
        except BaseException:
            self._handle.close()
            raise

        # only write image information once
        self._image_information_written = True

    @public_entry
    def write(self, buffer: np.ndarray) -> None:
        """Write voxels of the current IO region (image information first).

        The buffer must hold the region in storage order, i.e. be reshapeable
        to the shape of the hyperslab.
        """
        self.write_image_information()
        try:
            if not self._handle.is_open:
                self._handle.open_write(self._require_filename())
            ds = self._dataset()
            slab = self._hyperslab()
            slab.check_extent(ds.shape)
            data = np.asarray(buffer, dtype=to_storage_type(self.component_type).dtype)
            with translated_errors("Cannot write region"):
                ds[slab.selection] = data.reshape(slab.shape)
        except BaseException:
            self._handle.close()
            raise

    # ---- lifecycle ----

    def close(self) -> None:
        """Close the container (if open)."""
        self._handle.close()

    def __enter__(self):
        return self

    def __exit__(self, ex_type, ex_value, ex_traceback):
        self.close()

    def __del__(self):
        handle = getattr(self, "_handle", None)
        if handle is not None:
            handle.close()

    def describe(self) -> str:
        """Return a printable summary of file, settings and image information."""
        s = self.settings

        def on_off(flag: bool) -> str:
            return "On" if flag else "Off"

        lines = [
            f"H5File: {self._handle}",
            f"FileName: {self.filename}",
            f"Path: {s.path}",
            f"DataSetName: {s.dataset_name}",
            f"Overwrite: {on_off(s.overwrite)}",
            f"UseChunking: {on_off(s.use_chunking)}",
            f"UseMetaData: {on_off(s.use_metadata)}",
            f"UseInferredDimensions: {on_off(self.use_inferred_dimensions)}",
        ]
        if self.component_type != ComponentType.UNKNOWN:
            lines.append(f"ComponentType: {component_type_name(self.component_type)}")
        lines += [
            f"Dimensions: {self.dimensions}",
            f"NumberOfComponents: {self.number_of_components}",
            f"Origin: {self.origin}",
            f"Spacing: {self.spacing}",
            f"Direction: {self.direction}",
        ]
        return "\n".join(lines)

    def __repr__(self):
        return f"<ContainerImageIO {self.filename} {self.dataset_path}>"
