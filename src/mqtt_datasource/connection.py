"""Connection configuration and secret credential handling."""

from __future__ import annotations
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr

PASSWORD_FIELD = "password"


class SecretCredential(BaseModel):
    """Write-only secret as seen by an editing surface.

    Once the host has stored the secret only ``is_configured`` is visible;
    ``pending_plaintext`` holds a value typed in the current session that
    has not been saved yet.
    """

    model_config = ConfigDict(frozen=True)

    is_configured: bool = False
    pending_plaintext: Optional[SecretStr] = None

    @property
    def has_pending(self) -> bool:
        return self.pending_plaintext is not None


class ConnectionConfiguration(BaseModel):
    """Broker endpoint, identity and credential for one datasource instance."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    endpoint: str = ""  # host:port, e.g. 127.0.0.1:1883
    username: Optional[str] = None
    password: SecretCredential = Field(default_factory=SecretCredential)

    def to_settings_payload(self) -> Dict[str, Any]:
        """Non-secret payload persisted by the host.

        Carries only the configured flag for the password, never its value.
        """
        json_data: Dict[str, Any] = {"endpoint": self.endpoint}
        if self.username is not None:
            json_data["username"] = self.username

        return {
            "jsonData": json_data,
            "secureJsonFields": {PASSWORD_FIELD: self.password.is_configured},
        }

    def secure_json_data(self) -> Dict[str, str]:
        """Side channel handed to the secret store at save time."""
        if not self.password.has_pending:
            return {}
        return {PASSWORD_FIELD: self.password.pending_plaintext.get_secret_value()}

    @classmethod
    def from_settings_payload(cls, payload: Dict[str, Any]) -> "ConnectionConfiguration":
        """Build the editor view from a persisted non-secret payload."""
        json_data = payload.get("jsonData") or {}
        secure_fields = payload.get("secureJsonFields") or {}
        return cls(
            endpoint=json_data.get("endpoint") or "",
            username=json_data.get("username"),
            password=SecretCredential(
                is_configured=bool(secure_fields.get(PASSWORD_FIELD, False))),
        )


class ConnectionSettings(BaseModel):
    """Backend view of a connection, with the decrypted credential."""

    model_config = ConfigDict(frozen=True)

    endpoint: str = ""
    username: Optional[str] = None
    password: Optional[SecretStr] = None

    def require_endpoint(self) -> str:
        """Return the endpoint, raising if it was never entered."""
        if not self.endpoint:
            raise ValueError("endpoint is required to connect to the broker")
        return self.endpoint

    def broker_url(self) -> str:
        """Build the broker URL used by an MQTT client."""
        return f"tcp://{self.require_endpoint()}"

    def client_options(self) -> Dict[str, Any]:
        """Keyword options for an MQTT client; empty credentials are omitted."""
        options: Dict[str, Any] = {"broker": self.broker_url()}
        if self.username:
            options["username"] = self.username
        if self.password and self.password.get_secret_value():
            options["password"] = self.password.get_secret_value()
        return options
