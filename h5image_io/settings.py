"""Configuration of where and how an image is stored in a container."""
from __future__ import annotations

from typing import List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    PositiveInt,
    field_validator,
)
from typing_extensions import Annotated, Final

from .paths import elements_of, join_path

MAX_COMPRESSION_LEVEL: Final[int] = 9
"""Highest supported deflate level."""

DEFAULT_COMPRESSION_LEVEL: Final[int] = 5
"""Deflate level used unless configured otherwise."""


class ContainerSettings(BaseModel):
    """Settings consumed by `ContainerImageIO`.

    All vectors (offset, size, stride) are given in image axis order,
    i.e. fastest moving axis first. Each of them is only used if the
    corresponding `use_dataset_*` flag is set.
    """

    model_config = ConfigDict(validate_assignment=True)

    path: str = "/"
    """Group the image dataset is located in (created on write)."""

    dataset_name: str = "/data"
    """Name of the image dataset, relative to `path`."""

    overwrite: bool = False
    """Replace an existing dataset and metadata group on write."""

    recreate: bool = False
    """Truncate the whole container file on write."""

    use_chunking: bool = False
    """Store the dataset in chunks of one slice along the slowest axis."""

    use_metadata: bool = False
    """Read and write the metadata dictionary."""

    use_compression: bool = False
    """Deflate-compress the image dataset on write."""

    compression_level: Annotated[int, Field(ge=0, le=MAX_COMPRESSION_LEVEL)] = (
        DEFAULT_COMPRESSION_LEVEL
    )
    """Deflate level used if `use_compression` is set."""

    dataset_offset: List[NonNegativeInt] = []
    dataset_size: List[NonNegativeInt] = []
    dataset_stride: List[PositiveInt] = []

    use_dataset_offset: bool = False
    use_dataset_size: bool = False
    use_dataset_stride: bool = False

    @field_validator("dataset_name")
    @classmethod
    def check_dataset_name(cls, v: str) -> str:
        if not elements_of(v):
            raise ValueError("Dataset name must not be empty!")
        return v

    @property
    def dataset_path(self) -> str:
        """Normalized absolute path of the image dataset."""
        return join_path(self.path, self.dataset_name)

    @property
    def offset_override(self) -> Optional[List[int]]:
        return self.dataset_offset if self.use_dataset_offset else None

    @property
    def size_override(self) -> Optional[List[int]]:
        return self.dataset_size if self.use_dataset_size else None

    @property
    def stride_override(self) -> Optional[List[int]]:
        return self.dataset_stride if self.use_dataset_stride else None
