"""h5image-io CLI for inspecting containers and system introspection."""
import logging
from pathlib import Path

import typer
from rich import print
from rich.logging import RichHandler
from rich.table import Table

from ..container import can_read
from ..errors import ImageIOError
from ..imageio import ContainerImageIO
from ..metadata import as_python
from ..types import component_type_name
from . import general

app = typer.Typer()
app.add_typer(general.app, name="self")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug log."),
):
    """Read and inspect images stored in HDF5 containers."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(rich_tracebacks=True)],
        )


@app.command("probe")
def probe(file: Path):
    """Check whether a file is a readable container."""
    if can_read(file):
        print(f"[green]{file} is a readable container.[/green]")
    else:
        print(f"[red]{file} is not a readable container.[/red]")
        raise typer.Exit(code=1)


@app.command("show")
def show(
    file: Path,
    path: str = typer.Option("/", help="Group containing the image dataset."),
    dataset: str = typer.Option("/data", help="Name of the image dataset."),
    metadata: bool = typer.Option(False, help="Also show the metadata dictionary."),
):
    """Show image information of an image stored in a container."""
    try:
        with ContainerImageIO(
            file, path=path, dataset_name=dataset, use_metadata=metadata
        ) as io:
            io.read_image_information()
    except ImageIOError as e:
        print(f"[red]{type(e).__name__}: {e}[/red]")
        raise typer.Exit(code=1)

    print(f"[b]Dataset:[/b] {io.dataset_path}")
    print(f"[b]Component type:[/b] {component_type_name(io.component_type)}")
    print(f"[b]Components:[/b] {io.number_of_components}")
    print(f"[b]Dimensions:[/b] {io.dimensions}")
    if io.use_inferred_dimensions:
        print("(dimensions inferred from dataset shape)")
    print(f"[b]Origin:[/b] {io.origin}")
    print(f"[b]Spacing:[/b] {io.spacing}")
    print(f"[b]Direction:[/b] {io.direction}")

    if metadata:
        table = Table("Key", "Value", title="Metadata")
        for key, value in as_python(io.metadata).items():
            table.add_row(key, repr(value))
        print(table)
