"""shelf - publish packages to a local store and install them into projects."""

__version__ = "0.3.0"
