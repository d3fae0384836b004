"""Top-level package for the :mod:`morphc` component compiler.

The package exposes version metadata so build tooling can stamp generated
modules with the compiler release.

Example:
    >>> from morphc import __version__
    >>> __version__.split(".")[0]
    '0'
"""

from importlib import metadata

try:
    __version__ = metadata.version("morphc")
except metadata.PackageNotFoundError:  # pragma: no cover - fallback for editable installs
    __version__ = "0.0.0"

__all__ = ["__version__"]
