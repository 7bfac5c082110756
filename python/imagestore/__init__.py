"""imagestore: image upload, download-URL and deletion helpers over Firebase Storage."""

__version__ = "0.1.0"
