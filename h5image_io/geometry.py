"""
Geometric attributes of an image dataset.

The geometry is stored as four attributes attached to the image dataset.
All vectors are stored and exposed fastest moving axis first, whereas the
shape of the dataset itself lists the slowest moving axis first.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import h5py
import numpy as np
from typing_extensions import Final

from . import codec
from .errors import AlreadyExists, DimensionMismatch, RankMismatch
from .settings import ContainerSettings

logger = logging.getLogger(__name__)

ORIGIN: Final[str] = "Origin"
"""Attribute with the physical position of the first voxel."""

SPACING: Final[str] = "Spacing"
"""Attribute with the physical distance between voxels along each axis."""

DIMENSION: Final[str] = "Dimension"
"""Attribute with the number of voxels along each axis."""

DIRECTIONS: Final[str] = "Directions"
"""Attribute with the direction cosines matrix (one row per axis)."""

GEOMETRY_ATTRIBUTES: Final = (ORIGIN, SPACING, DIMENSION, DIRECTIONS)


def identity(ndim: int) -> List[List[float]]:
    return np.eye(ndim, dtype=np.float64).tolist()


@dataclass
class Geometry:
    """Geometry of an image, vectors in fastest moving first order."""

    dimensions: List[int] = field(default_factory=list)
    origin: List[float] = field(default_factory=list)
    spacing: List[float] = field(default_factory=list)
    direction: List[List[float]] = field(default_factory=list)

    number_of_components: int = 1
    """Number of interleaved components per voxel (1 for scalar images)."""

    inferred: bool = False
    """True if dimensions were inferred from the storage shape."""

    @classmethod
    def default(cls, ndim: int) -> Geometry:
        """Unit geometry of given dimensionality (all sizes zero)."""
        return cls(
            dimensions=[0] * ndim,
            origin=[0.0] * ndim,
            spacing=[1.0] * ndim,
            direction=identity(ndim),
        )

    @property
    def ndim(self) -> int:
        return len(self.dimensions)

    @property
    def storage_shape(self) -> List[int]:
        """Shape of the dataset holding an image of this geometry."""
        shape = list(reversed(self.dimensions))
        if self.number_of_components > 1:
            shape.append(self.number_of_components)
        return shape

    def check(self) -> None:
        """Check that all vectors agree with the dimensionality."""
        n = self.ndim
        if len(self.origin) != n or len(self.spacing) != n:
            msg = f"Origin/spacing length must be {n}: {self.origin}, {self.spacing}"
            raise DimensionMismatch(msg)
        if len(self.direction) != n or any(len(row) != n for row in self.direction):
            raise DimensionMismatch(f"Direction must be a {n}x{n} matrix")
        if self.number_of_components < 1:
            raise DimensionMismatch("Number of components must be positive")


def write_geometry(ds: h5py.Dataset, geometry: Geometry) -> None:
    """Attach the geometry attributes to an image dataset.

    None of the attributes may exist already.
    """
    geometry.check()
    for name in GEOMETRY_ATTRIBUTES:
        if name in ds.attrs:
            raise AlreadyExists(f"DataSet attribute already exists: {name}")
    codec.write_vector_attr(ds, ORIGIN, geometry.origin, np.dtype(np.float64))
    codec.write_vector_attr(ds, SPACING, geometry.spacing, np.dtype(np.float64))
    codec.write_vector_attr(ds, DIMENSION, geometry.dimensions, np.dtype(np.uint64))
    codec.write_matrix_attr(ds, DIRECTIONS, geometry.direction)


def _check_override(name: str, values: Optional[Sequence[int]], ndim: int):
    if values is not None and len(values) != ndim:
        raise DimensionMismatch(f"Invalid {name} dimension: {ndim} (got {values})")


def read_geometry(
    ds: h5py.Dataset,
    settings: Optional[ContainerSettings] = None,
    prior: Optional[Geometry] = None,
) -> Geometry:
    """Reconstruct the geometry of an image dataset.

    If the `Dimension` attribute is missing, the dimensions are inferred from
    the dataset shape (assuming a scalar image). Missing origin, spacing or
    direction keep the value of the `prior` geometry (if it has the right
    dimensionality), or the defaults.

    Offset, size and stride overrides from the settings are applied, i.e.
    the resulting dimensions and spacing are those of the region to be read.
    """
    settings = settings or ContainerSettings()
    shape = list(ds.shape or ())

    if DIMENSION in ds.attrs:
        dims_attr = codec.read_vector_attr(ds, DIMENSION, np.dtype(np.uint64))
        dims = [int(d) for d in dims_attr]
        ndim = len(dims)
        if len(shape) < ndim:
            msg = f"Dataset rank {len(shape)} is lower than dimensionality {ndim}"
            raise RankMismatch(msg)
        # an extra trailing storage axis holds the interleaved components
        ncomp = shape[-1] if len(shape) > ndim else 1
        inferred = False
    else:
        ndim = len(shape)
        dims = list(reversed(shape))
        ncomp = 1
        inferred = True
        logger.debug("Number of inferred dimensions: %d", ndim)

    ret = Geometry.default(ndim)
    if prior is not None and prior.ndim == ndim:
        ret.origin = list(prior.origin)
        ret.spacing = list(prior.spacing)
        ret.direction = [list(row) for row in prior.direction]
    ret.dimensions = dims
    ret.number_of_components = ncomp
    ret.inferred = inferred

    size = settings.size_override
    _check_override("size", size, ndim)
    if size is not None:
        ret.dimensions = list(size)

    if DIRECTIONS in ds.attrs:
        ret.direction = codec.read_matrix_attr(ds, DIRECTIONS).tolist()
    if ORIGIN in ds.attrs:
        ret.origin = codec.read_vector_attr(ds, ORIGIN, np.dtype(np.float64)).tolist()
    if SPACING in ds.attrs:
        spacing = codec.read_vector_attr(ds, SPACING, np.dtype(np.float64))
        ret.spacing = spacing.tolist()

    offset = settings.offset_override
    _check_override("offset", offset, ndim)

    stride = settings.stride_override
    _check_override("stride", stride, ndim)
    if stride is not None:
        # sampling every n-th voxel means n times the spacing
        ret.spacing = [sp * st for sp, st in zip(ret.spacing, stride)]
        if size is None:
            for i, st in enumerate(stride):
                if st > 1:
                    off = offset[i] if offset is not None else 0
                    ret.dimensions[i] = max(0, ret.dimensions[i] // st - off)

    return ret
