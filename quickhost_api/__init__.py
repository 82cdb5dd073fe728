"""QuickHost platform API: auth, row access, mail procedures, realtime and public previews."""

__version__ = "0.1.0"
