"""Utility modules for the labeler."""
