"""Building blocks for writing cloud native buildpacks: layers, SBOMs, stacks and utilities."""

__version__ = "0.1.0"