"""Run configuration."""

from slngraph.config.schema import BuildConfig

__all__ = ["BuildConfig"]
