"""Automatic GitHub issue labeling with language models."""

__version__ = "0.1.0"
