"""Create files and folders from templates."""

__version__ = "0.1.0"
