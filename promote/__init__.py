"""Promote CI toolchain builds to public release channels."""

__version__ = "0.3.0"
