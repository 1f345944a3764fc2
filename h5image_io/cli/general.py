import platform
import tempfile
from pathlib import Path

import typer
from rich import print

from h5image_io import __version__

app = typer.Typer()


@app.command("info")
def info():
    """Show information about the system and Python environment."""
    import h5py
    import numpy

    un = platform.uname()
    print(f"[b]System:[/b] {un.system} {un.release} {un.version}")
    print(
        f"[b]Python:[/b] {platform.python_version()} ({platform.python_implementation()})"
    )
    print("[b]Env:[/b]")
    print("h5image-io", __version__)
    print("h5py", h5py.__version__, f"(HDF5 {h5py.version.hdf5_version})")
    print("numpy", numpy.__version__)


@app.command("check")
def check():
    """Run a self-test to ensure that writing and reading images works correctly."""
    import numpy as np

    from h5image_io import ContainerImageIO

    print("Constructing test image...")
    # 3x4 image with 2 components per voxel
    image = np.arange(24, dtype=np.float32).reshape(4, 3, 2)
    metadata = {
        "Modality": "CT",
        "Slices": 4,
        "Calibrated": True,
        "Window": [40.0, 400.0],
    }

    with tempfile.TemporaryDirectory() as tmpdir:
        container_path = Path(tmpdir) / "test_container.h5"

        print("Writing image to container...")
        with ContainerImageIO(
            container_path, path="/images", use_metadata=True, use_compression=True
        ) as io:
            io.set_image(image, number_of_components=2, spacing=[0.5, 2.0])
            io.metadata.update(metadata)
            io.write(image)

        print("Reading image from container...")
        with ContainerImageIO(container_path, path="/images", use_metadata=True) as io:
            io.read_image_information()
            data = io.read()
            restored = dict(io.metadata)

        print("Comparing image and metadata...")
        if not np.array_equal(data, image):
            print("[b][red]Read image differs from written image![/red][/b]")
            raise typer.Exit(code=1)
        if io.spacing != [0.5, 2.0] or io.number_of_components != 2:
            print("[b][red]Read geometry differs from written geometry![/red][/b]")
            raise typer.Exit(code=1)
        if set(restored) != set(metadata):
            print("[b][red]Read metadata differs from written metadata![/red][/b]")
            raise typer.Exit(code=1)

    print("[b][green]Self-check successfully completed![/green][/b]")
