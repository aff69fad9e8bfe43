"""seal-link - link CI artifacts to Seal change records by pull request."""

__version__ = "0.1.0"
