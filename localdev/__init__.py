"""localdev — local lifecycle management for legacy CMS apps."""

__version__ = "0.1.0"
