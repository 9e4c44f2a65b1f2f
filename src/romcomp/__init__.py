"""romcomp - batch ROM compression driven by external format-specific tools."""

__version__ = "0.1.0"
