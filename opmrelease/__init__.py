"""Resolve, fetch and unpack release source artifacts, and check release paths and dependencies."""

__version__ = "0.1.0"