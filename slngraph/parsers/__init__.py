"""Descriptor, source and manifest parsers."""
