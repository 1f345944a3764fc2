import numpy as np
import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from h5image_io.errors import AlreadyExists, DimensionMismatch, RankMismatch
from h5image_io.geometry import (
    DIMENSION,
    DIRECTIONS,
    ORIGIN,
    SPACING,
    Geometry,
    read_geometry,
    write_geometry,
)
from h5image_io.settings import ContainerSettings

floats = st.floats(min_value=-1e6, max_value=1e6, allow_nan=False)


@st.composite
def geometries(draw):
    ndim = draw(st.integers(min_value=1, max_value=5))
    return Geometry(
        dimensions=draw(st.lists(st.integers(1, 4), min_size=ndim, max_size=ndim)),
        origin=draw(st.lists(floats, min_size=ndim, max_size=ndim)),
        spacing=draw(st.lists(floats, min_size=ndim, max_size=ndim)),
        direction=draw(
            st.lists(
                st.lists(floats, min_size=ndim, max_size=ndim),
                min_size=ndim,
                max_size=ndim,
            )
        ),
        number_of_components=draw(st.integers(1, 3)),
    )


@settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(geometries())
def test_geometry_roundtrip(h5file, geometry):
    if "img" in h5file:
        del h5file["img"]
    ds = h5file.create_dataset("img", shape=geometry.storage_shape, dtype=np.uint8)
    write_geometry(ds, geometry)
    assert ds.attrs[DIMENSION].dtype == np.uint64
    assert ds.attrs[ORIGIN].dtype == np.float64
    assert ds.attrs[DIRECTIONS].shape == (geometry.ndim, geometry.ndim)

    assert read_geometry(ds) == geometry


def test_storage_shape():
    g = Geometry.default(3)
    g.dimensions = [10, 20, 30]
    assert g.storage_shape == [30, 20, 10]
    g.number_of_components = 3
    assert g.storage_shape == [30, 20, 10, 3]
    assert g.direction == [[1.0, 0, 0], [0, 1.0, 0], [0, 0, 1.0]]


def test_check():
    g = Geometry.default(2)
    g.check()
    g.origin = [0.0]
    with pytest.raises(DimensionMismatch):
        g.check()
    g = Geometry.default(2)
    g.direction = [[1.0, 0.0]]
    with pytest.raises(DimensionMismatch):
        g.check()


def test_write_existing_attribute(h5file):
    ds = h5file.create_dataset("img", shape=(2, 3), dtype=np.uint8)
    ds.attrs[SPACING] = [1.0, 1.0]
    g = Geometry.default(2)
    g.dimensions = [3, 2]
    with pytest.raises(AlreadyExists):
        write_geometry(ds, g)


def test_inferred_dimensions(h5file):
    ds = h5file.create_dataset("img", shape=(4, 3), dtype=np.int16)
    prior = Geometry.default(2)
    prior.spacing = [0.5, 0.5]

    g = read_geometry(ds, prior=prior)
    assert g.inferred
    assert g.dimensions == [3, 4]
    assert g.number_of_components == 1
    assert g.origin == [0.0, 0.0]
    # missing attributes keep the prior values
    assert g.spacing == [0.5, 0.5]

    # prior of wrong dimensionality is ignored
    g = read_geometry(ds, prior=Geometry.default(3))
    assert g.spacing == [1.0, 1.0]


def test_rank_lower_than_dimension(h5file):
    ds = h5file.create_dataset("img", shape=(4,), dtype=np.int16)
    ds.attrs[DIMENSION] = np.array([4, 1], dtype=np.uint64)
    with pytest.raises(RankMismatch):
        read_geometry(ds)


def _image(h5file, dims):
    g = Geometry.default(len(dims))
    g.dimensions = list(dims)
    ds = h5file.create_dataset("img", shape=g.storage_shape, dtype=np.float32)
    write_geometry(ds, g)
    return ds


def test_size_override(h5file):
    ds = _image(h5file, [10, 20, 30])
    s = ContainerSettings(use_dataset_size=True, dataset_size=[5, 6, 7])
    assert read_geometry(ds, s).dimensions == [5, 6, 7]

    s = ContainerSettings(use_dataset_size=True, dataset_size=[5, 6])
    with pytest.raises(DimensionMismatch):
        read_geometry(ds, s)

    # disabled overrides are ignored
    s = ContainerSettings(dataset_size=[5, 6])
    assert read_geometry(ds, s).dimensions == [10, 20, 30]


def test_offset_override(h5file):
    ds = _image(h5file, [10, 20, 30])
    s = ContainerSettings(use_dataset_offset=True, dataset_offset=[1, 2])
    with pytest.raises(DimensionMismatch):
        read_geometry(ds, s)


def test_stride_override(h5file):
    ds = _image(h5file, [100])
    s = ContainerSettings(use_dataset_stride=True, dataset_stride=[2])
    g = read_geometry(ds, s)
    assert g.dimensions == [50]
    assert g.spacing == [2.0]

    s.use_dataset_offset = True
    s.dataset_offset = [10]
    assert read_geometry(ds, s).dimensions == [40]

    # an explicit size wins
    s.use_dataset_size = True
    s.dataset_size = [7]
    assert read_geometry(ds, s).dimensions == [7]

    s = ContainerSettings(use_dataset_stride=True, dataset_stride=[2, 2])
    with pytest.raises(DimensionMismatch):
        read_geometry(ds, s)


def test_stride_override_volume(h5file):
    ds = _image(h5file, [100, 100, 100])
    s = ContainerSettings(use_dataset_stride=True, dataset_stride=[2, 2, 2])
    g = read_geometry(ds, s)
    assert g.dimensions == [50, 50, 50]
    assert g.spacing == [2.0, 2.0, 2.0]

    # strides apply per axis, fastest moving axis first
    del h5file["img"]
    ds = _image(h5file, [100, 60, 40])
    ds.attrs.modify(SPACING, np.array([1.0, 2.0, 3.0]))
    s = ContainerSettings(use_dataset_stride=True, dataset_stride=[1, 3, 4])
    g = read_geometry(ds, s)
    assert g.dimensions == [100, 20, 10]
    assert g.spacing == [1.0, 6.0, 12.0]
