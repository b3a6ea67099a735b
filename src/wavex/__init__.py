"""wavex - dependency-ordered wave backlog scheduler."""

__version__ = "0.1.0"
