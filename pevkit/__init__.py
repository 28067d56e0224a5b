"""Tools for inspecting PE files: headers, directories, imports, exports, sections and address conversion."""

__version__ = "0.84.0"