"""
Mapping of requested image regions to hyperslab selections in a dataset.

Image regions are given in image axis order (fastest moving axis first),
the dataset is stored in C order (slowest moving axis first) with the
interleaved components, if any, as an additional fastest moving axis.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .errors import DimensionMismatch

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IORegion:
    """Region of an image to read or write (fastest moving axis first)."""

    index: Tuple[int, ...]
    size: Tuple[int, ...]

    def __post_init__(self):
        object.__setattr__(self, "index", tuple(int(i) for i in self.index))
        object.__setattr__(self, "size", tuple(int(s) for s in self.size))
        if len(self.index) != len(self.size):
            raise DimensionMismatch(f"Region index and size differ: {self}")

    @classmethod
    def largest(cls, dimensions: Sequence[int]) -> IORegion:
        """Region covering a whole image with given dimensions."""
        return cls(index=(0,) * len(dimensions), size=tuple(dimensions))

    @property
    def dimension(self) -> int:
        return len(self.size)

    @property
    def number_of_pixels(self) -> int:
        ret = 1
        for s in self.size:
            ret *= s
        return ret


@dataclass(frozen=True)
class Hyperslab:
    """Hyperslab selection in storage order (slowest moving axis first).

    `size` is the number of selected elements along each axis,
    picking every `stride`-th element starting at `offset`.
    """

    offset: Tuple[int, ...]
    size: Tuple[int, ...]
    stride: Tuple[int, ...]

    @property
    def rank(self) -> int:
        return len(self.size)

    @property
    def shape(self) -> Tuple[int, ...]:
        """Shape of the memory buffer matching the selection."""
        return self.size

    @property
    def selection(self) -> Tuple[slice, ...]:
        """Index expression selecting the hyperslab in a h5py dataset."""
        return tuple(
            slice(o, o + (n - 1) * s + 1 if n else o, s)
            for o, n, s in zip(self.offset, self.size, self.stride)
        )

    def check_extent(self, shape: Sequence[int]) -> None:
        """Raise DimensionMismatch unless the selection fits a dataset of given shape."""
        if len(shape) != self.rank:
            msg = f"Selection rank {self.rank} != dataset rank {len(shape)}"
            raise DimensionMismatch(msg)
        for axis, (o, n, s, ext) in enumerate(
            zip(self.offset, self.size, self.stride, shape)
        ):
            # empty selections only need a valid start
            last = o + (n - 1) * s if n else o - 1
            if o > ext or last >= ext:
                msg = f"Selection {o}+{n}x{s} exceeds extent {ext} of axis {axis}"
                raise DimensionMismatch(msg)


def _pick(
    override: Optional[Sequence[int]], name: str, j: int, default: int
) -> int:
    if override is None:
        return default
    if j >= len(override):
        raise DimensionMismatch(f"No {name} given for axis {j}: {list(override)}")
    return int(override[j])


def select_hyperslab(
    region: IORegion,
    number_of_dimensions: int,
    number_of_components: int = 1,
    *,
    offset: Optional[Sequence[int]] = None,
    size: Optional[Sequence[int]] = None,
    stride: Optional[Sequence[int]] = None,
) -> Hyperslab:
    """Compute the hyperslab for a requested image region.

    The explicit offset, size and stride vectors (image axis order) replace
    the region index, region size and unit stride respectively, if given.
    """
    rank = number_of_dimensions + (1 if number_of_components > 1 else 0)
    h_offset: List[int] = [0] * rank
    h_size: List[int] = [1] * rank
    h_stride: List[int] = [1] * rank

    # positions are counted from the fastest moving end of the storage axes
    i = 0
    if number_of_components > 1:
        h_size[rank - 1] = number_of_components
        i += 1

    j = 0
    while j < region.dimension and i < rank:
        pos = rank - i - 1
        h_offset[pos] = _pick(offset, "offset", j, region.index[j])
        h_size[pos] = _pick(size, "size", j, region.size[j])
        h_stride[pos] = _pick(stride, "stride", j, 1)
        i += 1
        j += 1
    # remaining slower axes are padded with offset 0, size 1

    ret = Hyperslab(tuple(h_offset), tuple(h_size), tuple(h_stride))
    logger.debug("Region %s -> hyperslab %s", region, ret)
    return ret
