"""httpbind - HTTP binding (de)serialization code generator."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("httpbind")
except PackageNotFoundError:
    __version__ = "(local)"
