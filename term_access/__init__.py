"""Term-based access control for hierarchical content."""

__version__ = "1.0.0"
