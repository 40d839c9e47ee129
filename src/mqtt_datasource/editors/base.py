"""Base class for editing surfaces."""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


def replace_fields(model: M, **changes: Any) -> M:
    """Copy a model with some fields replaced, validating the result.

    Raises ``pydantic.ValidationError`` when a new value has the wrong type.
    """
    return type(model).model_validate({**dict(model), **changes})


class BaseEditor(ABC, Generic[T]):
    """Holds one draft value and reports every replacement to the host.

    Edits never mutate the draft; each one produces a new value which is
    passed to ``on_change`` exactly once.
    """

    def __init__(self, value: T, on_change: Optional[Callable[[T], Any]] = None):
        self.value = value
        self.on_change = on_change

    def _commit(self, new_value: T) -> T:
        self.value = new_value
        if self.on_change is not None:
            self.on_change(new_value)
        return new_value

    @abstractmethod
    def render(self) -> Dict[str, Any]:
        """Return what a form built on this editor displays."""
        pass
