"""Command line interface for the issue labeler."""
