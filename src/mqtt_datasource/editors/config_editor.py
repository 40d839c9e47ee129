"""Connection configuration editor."""

from __future__ import annotations
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import SecretStr

from ..connection import ConnectionConfiguration, SecretCredential
from .base import BaseEditor, replace_fields

logger = logging.getLogger(__name__)

ENDPOINT_PLACEHOLDER = "127.0.0.1:1883"


def set_endpoint(config: ConnectionConfiguration, value: str) -> ConnectionConfiguration:
    """Replace the endpoint. Empty is accepted as "not entered yet"."""
    return replace_fields(config, endpoint=value)


def set_username(config: ConnectionConfiguration, value: Optional[str]) -> ConnectionConfiguration:
    return replace_fields(config, username=value)


def set_pending_password(config: ConnectionConfiguration, value: str) -> ConnectionConfiguration:
    """Hold a newly typed password until the host saves the configuration.

    The configured flag is left alone; the host flips it when it commits
    the plaintext to its secret store.
    """
    password = replace_fields(config.password, pending_plaintext=value)
    return replace_fields(config, password=password)


def reset_password(config: ConnectionConfiguration) -> ConnectionConfiguration:
    """Forget the stored password; a new one must be entered before saving."""
    password = SecretCredential(is_configured=False,
                                pending_plaintext=SecretStr(""))
    return replace_fields(config, password=password)


class ConfigEditor(BaseEditor[ConnectionConfiguration]):
    """Editing surface for a datasource instance's connection settings."""

    def __init__(
        self,
        options: Optional[ConnectionConfiguration] = None,
        on_options_change: Optional[Callable[[ConnectionConfiguration], Any]] = None,
    ):
        if options is None:
            options = ConnectionConfiguration()
        super().__init__(options, on_options_change)

    @property
    def options(self) -> ConnectionConfiguration:
        return self.value

    def set_endpoint(self, value: str) -> ConnectionConfiguration:
        logger.debug("Endpoint changed")
        return self._commit(set_endpoint(self.value, value))

    def set_username(self, value: Optional[str]) -> ConnectionConfiguration:
        logger.debug("Username changed")
        return self._commit(set_username(self.value, value))

    def set_pending_password(self, value: str) -> ConnectionConfiguration:
        logger.debug("Password entered")
        return self._commit(set_pending_password(self.value, value))

    def reset_password(self) -> ConnectionConfiguration:
        logger.debug("Password reset")
        return self._commit(reset_password(self.value))

    def render(self) -> Dict[str, Any]:
        password = self.value.password
        return {
            "endpoint": self.value.endpoint,
            "endpoint_placeholder": ENDPOINT_PLACEHOLDER,
            "username": self.value.username or "",
            "password": {
                "is_configured": password.is_configured,
                "has_pending": bool(
                    password.has_pending and password.pending_plaintext.get_secret_value()),
            },
        }
