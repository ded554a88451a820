"""Pulsar: run tinker snippets and tail logs for local Laravel projects."""

__version__ = "0.1.0"
