"""triggercheck - replay workflow trigger filters against a commit range."""

__version__ = "0.1.0"
