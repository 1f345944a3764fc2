import logging

import numpy as np
import pytest

from h5image_io.errors import AlreadyExists, PathNotFound
from h5image_io.metadata import (
    METADATA_GROUP,
    as_python,
    metadata_path,
    persist_metadata,
    restore_metadata,
)
from h5image_io.paths import ensure_group
from h5image_io.values import MetaKind, MetaValue


def test_metadata_path():
    assert metadata_path("/") == "/ITKMetaData"
    assert metadata_path("/scan/") == "/scan/ITKMetaData"


def test_metadata_roundtrip(h5file):
    metadata = {
        "Modality": "CT",
        "Calibrated": True,
        "Slices": 42,
        "Huge": 2**63,
        "Scale": 0.25,
        "Gain": np.float32(1.5),
        "Window": [40.0, 400.0],
        "Counts": np.array([1, 2, 3], dtype=np.uint16),
        "Exact": MetaValue.scalar(MetaKind.LONGLONG, -1),
    }
    persist_metadata(h5file, metadata)
    restored = restore_metadata(h5file)

    assert list(restored.keys()) == list(metadata.keys())
    for key, obj in metadata.items():
        assert restored[key] == MetaValue.of(obj)

    assert as_python(restored)["Window"] == [40.0, 400.0]
    assert as_python(restored)["Modality"] == "CT"


def test_unsupported_entries_dropped(h5file, caplog):
    metadata = {
        "Good": 1,
        "Nothing": None,
        "Flags": [True, False],
        "Nested": [[1, 2], [3, 4]],
        "a/b": 5,
        "": 6,
    }
    with caplog.at_level(logging.DEBUG, logger="h5image_io.metadata"):
        persist_metadata(h5file, metadata)
    assert "Skipping" in caplog.text

    restored = restore_metadata(h5file)
    assert list(restored.keys()) == ["Good"]


def test_restore_skips_foreign_objects(h5file):
    grp = persist_metadata(ensure_group(h5file, "/scan"), {"a": 1})
    grp.create_group("subgroup")
    grp["matrix"] = np.zeros((2, 2))
    grp["complex"] = np.array([1j, 2j])

    metadata = {"existing": 0}
    ret = restore_metadata(h5file, "/scan", metadata)
    assert ret is metadata
    assert set(metadata.keys()) == {"existing", "a"}


def test_persist_twice_fails(h5file):
    persist_metadata(h5file, {})
    assert METADATA_GROUP in h5file
    with pytest.raises(AlreadyExists):
        persist_metadata(h5file, {"a": 1})


def test_restore_missing(h5file):
    with pytest.raises(PathNotFound):
        restore_metadata(h5file, "/nothing")
