"""Error kinds raised by the container codec.

Every error raised across the public interface is an `ImageIOError`.
The kinds also derive from the closest builtin exception, so callers that
only care about e.g. `FileNotFoundError` or `ValueError` can keep catching those.
"""
from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Tuple, Type, TypeVar, cast


class ImageIOError(Exception):
    """Base class of all errors raised by this package."""


class UnsupportedType(ImageIOError, TypeError):
    """A requested component kind has no storage counterpart."""


class UnrecognizedStorageType(ImageIOError, TypeError):
    """A stored value has a type with no corresponding component kind."""


class PathNotFound(ImageIOError, LookupError):
    """A required group, dataset or metadata group is missing in the container."""


class NotFound(ImageIOError, FileNotFoundError):
    """The container file does not exist."""


class NotAContainer(ImageIOError, ValueError):
    """The file exists, but is not an HDF5 container."""


class AlreadyExists(ImageIOError, FileExistsError):
    """Write attempted onto an existing dataset, attribute or group."""


class DimensionMismatch(ImageIOError, ValueError):
    """An override or geometry vector disagrees with the image dimensionality."""


class RankMismatch(ImageIOError, ValueError):
    """A stored object has the wrong storage rank for the expected value."""


class ContainerIOFailure(ImageIOError, OSError):
    """Catch-all for failures reported by the HDF5 backend."""


BACKEND_ERRORS: Tuple[Type[Exception], ...] = (
    OSError,
    KeyError,
    ValueError,
    TypeError,
    RuntimeError,
)
"""Exception types h5py uses to report low-level HDF5 failures."""


@contextmanager
def translated_errors(context: str = "") -> Iterator[None]:
    """Re-raise backend exceptions as `ContainerIOFailure`.

    Domain errors pass through unchanged. The original message is kept
    (prefixed with `context`, if given) and the original exception is chained.
    """
    try:
        yield
    except ImageIOError:
        raise
    except BACKEND_ERRORS as e:
        msg = f"{context}: {e}" if context else str(e)
        raise ContainerIOFailure(msg) from e


F = TypeVar("F", bound=Callable[..., Any])


def public_entry(func: F) -> F:
    """Decorate a public entry point to translate backend exceptions."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with translated_errors(func.__name__):
            return func(*args, **kwargs)

    return cast(F, wrapper)
