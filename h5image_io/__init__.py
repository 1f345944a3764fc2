"""h5image_io package."""
import importlib_metadata
from typing_extensions import Final

# re-export the main entry points (they should be imported from the top level)
from .errors import ImageIOError  # noqa: F401
from .imageio import ContainerImageIO  # noqa: F401
from .settings import ContainerSettings  # noqa: F401
from .types import ComponentType  # noqa: F401

# Set version, will use version from pyproject.toml if defined
__version__: Final[str] = importlib_metadata.version(__package__ or __name__)
