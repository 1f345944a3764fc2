import secrets
from pathlib import Path

import h5py
import numpy as np
import pytest


@pytest.fixture(scope="session")
def ds_dir(tmpdir_factory):
    """Create a fresh temporary directory for containers created in the tests."""
    return tmpdir_factory.mktemp("h5image_tests")


@pytest.fixture
def tmp_ds_path_factory(ds_dir):
    """Return a container file name generator to be used for creating containers.

    All containers will be cleaned up after completing the test.
    """
    names = []

    def fresh_name(suffix: str = ".h5") -> Path:
        name = secrets.token_hex(4)
        names.append(name)
        return Path(ds_dir / f"{name}{suffix}")

    yield fresh_name

    # clean up
    for name in names:
        for path in Path(ds_dir).glob(f"{name}*"):
            if path.is_file() or path.is_symlink():
                path.unlink()


@pytest.fixture
def tmp_ds_path(tmp_ds_path_factory):
    """Generate a container file name to be used for creating a container.

    The container will be cleaned up after completing the test.
    """
    return tmp_ds_path_factory()


@pytest.fixture
def h5file(tmp_ds_path):
    """Open a fresh, empty container for writing."""
    with h5py.File(tmp_ds_path, "w") as f:
        yield f


@pytest.fixture
def raw_image_path(tmp_ds_path):
    """Create a container with a bare 3x4 int16 dataset (no geometry attributes)."""
    with h5py.File(tmp_ds_path, "w") as f:
        f.create_dataset("data", data=np.arange(12, dtype=np.int16).reshape(4, 3))
    return tmp_ds_path
