"""apiclientgen - Go API client code generator for protobuf services."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("apiclientgen")
except PackageNotFoundError:
    __version__ = "(local)"
