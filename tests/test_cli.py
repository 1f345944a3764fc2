import numpy as np
from typer.testing import CliRunner

from h5image_io import ContainerImageIO, __version__
from h5image_io.cli import app

runner = CliRunner()


def test_self_info():
    result = runner.invoke(app, ["self", "info"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_self_check():
    result = runner.invoke(app, ["self", "check"])
    assert result.exit_code == 0
    assert "successfully" in result.stdout


def test_probe(tmp_ds_path_factory, raw_image_path):
    result = runner.invoke(app, ["probe", str(raw_image_path)])
    assert result.exit_code == 0

    result = runner.invoke(app, ["probe", str(tmp_ds_path_factory())])
    assert result.exit_code == 1


def test_show(tmp_ds_path):
    image = np.zeros((2, 3), dtype=np.float32)
    with ContainerImageIO(tmp_ds_path, path="/img", use_metadata=True) as io:
        io.set_image(image, spacing=[0.5, 1.0])
        io.metadata["Modality"] = "CT"
        io.metadata["Window"] = [40.0, 400.0]
        io.write(image)

    result = runner.invoke(
        app, ["show", str(tmp_ds_path), "--path", "/img", "--metadata"]
    )
    assert result.exit_code == 0
    assert "FLOAT" in result.stdout
    assert "[3, 2]" in result.stdout
    assert "Modality" in result.stdout
    # metadata values are shown as plain python values
    assert "'CT'" in result.stdout
    assert "[40.0, 400.0]" in result.stdout

    result = runner.invoke(app, ["show", str(tmp_ds_path)])
    assert result.exit_code == 1
    assert "PathNotFound" in result.stdout
