"""Maven version, range and POM handling, and PRI resource index files."""

__version__ = "0.1.0"