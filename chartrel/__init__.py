"""Helm chart releaser: GitHub releases plus a GitHub pages chart index."""

__version__ = "0.1.0"
