"""Path helpers for descriptor values written with Windows separators.

Project descriptors are authored on Windows, so the values read from them
use ``\\`` as separator regardless of the platform the tool runs on. These
helpers convert such values into native paths and derive the short, lowercase
file names the dependency lookups are keyed on.
"""

import ntpath
import os
from pathlib import Path
from typing import Union


def to_native(value: str) -> str:
    """Convert a descriptor path value into a native path string.

    Args:
        value: Path as written in a descriptor (may use ``\\``).

    Returns:
        str: Path using the platform separator.
    """
    if os.sep == "\\":
        return value.replace("/", "\\")
    return value.replace("\\", "/")


def file_name(value: str) -> str:
    """Return the last component of a path written with either separator.

    Examples:
        >>> file_name("..\\\\bin\\\\Foo.lib")
        'Foo.lib'
        >>> file_name("lib/foo.dll")
        'foo.dll'
    """
    return ntpath.basename(value.strip().replace("/", "\\"))


def strip_extension(name: str) -> str:
    """Remove the final extension from a file name."""
    root, _ = ntpath.splitext(name)
    return root


def has_extension(value: str) -> bool:
    """Check whether a path value carries a file extension."""
    return bool(ntpath.splitext(file_name(value))[1])


def resolve_path(value: str, base_dir: Union[str, Path]) -> str:
    """Resolve a descriptor path value against a base directory.

    Args:
        value: Absolute or relative path value from a descriptor.
        base_dir: Directory relative values are resolved against.

    Returns:
        str: Normalized absolute native path.
    """
    native = to_native(value.strip())
    if not os.path.isabs(native):
        native = os.path.join(str(base_dir), native)
    return os.path.normpath(native)


def path_key(path: Union[str, Path]) -> str:
    """Case-insensitive identity key for a full path."""
    return os.path.normpath(str(path)).lower()


def relative_path(from_file: Union[str, Path], to_file: Union[str, Path]) -> str:
    """Path of ``to_file`` relative to the directory containing ``from_file``.

    The result uses ``\\`` separators because it is written back into a
    descriptor.
    """
    rel = os.path.relpath(str(to_file), os.path.dirname(str(from_file)))
    return rel.replace("/", "\\")
