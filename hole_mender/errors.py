"""Provides the exceptions raised by the hole repair tools."""


class HoleMenderError(Exception):
    """Base class for all errors raised by HoleMender."""


class ConfigurationError(HoleMenderError, ValueError):
    """Raised when a tool is given missing or invalid parameters."""


class InputError(HoleMenderError, ValueError):
    """Raised when an input mesh is missing, unreadable, or empty."""


class MeshTopologyError(InputError):
    """Raised when a mesh cannot be assembled into a half-edge mesh."""


class OutputError(HoleMenderError, OSError):
    """Raised when an output mesh cannot be written."""


class PatchError(HoleMenderError):
    """Raised when a boundary loop cannot be triangulated."""
