"""importfence: import-boundary checker for multi-package repositories."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("importfence")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
