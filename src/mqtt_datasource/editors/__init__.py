"""Editing surfaces for connection settings and queries."""

from .base import BaseEditor
from .config_editor import ConfigEditor
from .query_editor import QueryEditor, RuleIndexError

__all__ = [
    "BaseEditor",
    "ConfigEditor",
    "QueryEditor",
    "RuleIndexError",
]
