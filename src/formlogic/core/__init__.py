"""Core configuration and utilities for formlogic."""

from formlogic.core.config import settings
from formlogic.core.logging import setup_logging

__all__ = ["settings", "setup_logging"]
