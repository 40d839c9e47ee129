"""In-process stand-in for the host's instance settings and secret store."""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_serializer

from .connection import (
    PASSWORD_FIELD,
    ConnectionConfiguration,
    ConnectionSettings,
)

logger = logging.getLogger(__name__)


class InstanceSettings(BaseModel):
    """Settings handed to a datasource when the host creates an instance."""

    model_config = ConfigDict(frozen=True)

    uid: str
    name: Optional[str] = None
    json_data: Dict[str, Any] = Field(default_factory=dict)
    decrypted_secure_json_data: Dict[str, SecretStr] = Field(default_factory=dict)

    def connection_settings(self) -> ConnectionSettings:
        return ConnectionSettings(
            endpoint=self.json_data.get("endpoint") or "",
            username=self.json_data.get("username"),
            password=self.decrypted_secure_json_data.get(PASSWORD_FIELD),
        )


class StoreState(BaseModel):
    """Everything a settings store persists: payloads and secrets, by uid."""

    settings: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    secrets: Dict[str, Dict[str, SecretStr]] = Field(default_factory=dict)

    @field_serializer("secrets", when_used="json")
    def reveal_secrets(self, secrets: Dict[str, Dict[str, SecretStr]]) -> Dict[str, Dict[str, str]]:
        return {
            uid: {key: value.get_secret_value() for key, value in values.items()}
            for uid, values in secrets.items()
        }


class SettingsStore:
    """Persists connection configurations, keeping secrets in a separate map.

    The editor only ever gets back the configured flag for a secret. Plaintext
    enters through ``ConnectionConfiguration.secure_json_data()`` at save time
    and leaves only through ``instance_settings()``.
    """

    def __init__(self, state: Optional[StoreState] = None):
        self._state = state if state is not None else StoreState()

    def save(self, uid: str, config: ConnectionConfiguration,
             name: Optional[str] = None) -> ConnectionConfiguration:
        """Persist a configuration and return the editor's view of it."""
        secrets = self._state.secrets.setdefault(uid, {})

        if config.password.has_pending:
            plaintext = config.secure_json_data()[PASSWORD_FIELD]
            if plaintext:
                secrets[PASSWORD_FIELD] = SecretStr(plaintext)
            else:
                # An empty value after a reset clears the stored secret.
                secrets.pop(PASSWORD_FIELD, None)
        elif not config.password.is_configured:
            secrets.pop(PASSWORD_FIELD, None)

        payload = config.to_settings_payload()
        payload["secureJsonFields"] = {PASSWORD_FIELD: PASSWORD_FIELD in secrets}
        if name is not None:
            payload["name"] = name
        elif uid in self._state.settings and "name" in self._state.settings[uid]:
            payload["name"] = self._state.settings[uid]["name"]
        self._state.settings[uid] = payload

        logger.info(
            f"Saved settings for datasource '{uid}' "
            f"(password configured: {PASSWORD_FIELD in secrets})")
        return self.load(uid)

    def load(self, uid: str) -> ConnectionConfiguration:
        if uid not in self._state.settings:
            raise KeyError(f"No settings stored for datasource '{uid}'")
        return ConnectionConfiguration.from_settings_payload(self._state.settings[uid])

    def instance_settings(self, uid: str) -> InstanceSettings:
        """Settings with decrypted secrets, for constructing a datasource."""
        if uid not in self._state.settings:
            raise KeyError(f"No settings stored for datasource '{uid}'")
        payload = self._state.settings[uid]
        return InstanceSettings(
            uid=uid,
            name=payload.get("name"),
            json_data=dict(payload.get("jsonData") or {}),
            decrypted_secure_json_data=dict(self._state.secrets.get(uid, {})),
        )

    def delete(self, uid: str) -> None:
        self._state.settings.pop(uid, None)
        self._state.secrets.pop(uid, None)
        logger.info(f"Deleted settings for datasource '{uid}'")

    def list_uids(self) -> List[str]:
        return sorted(self._state.settings)

    def __contains__(self, uid: str) -> bool:
        return uid in self._state.settings

    def to_dict(self) -> Dict[str, Any]:
        return self._state.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SettingsStore":
        return cls(StoreState.model_validate(data))

    def save_file(self, path: Union[str, Path]) -> None:
        Path(path).write_text(self._state.model_dump_json(indent=2), encoding="utf-8")

    @classmethod
    def load_file(cls, path: Union[str, Path]) -> "SettingsStore":
        """Load a store from disk; a missing file gives an empty store."""
        path = Path(path)
        if not path.exists():
            return cls()
        return cls(StoreState.model_validate_json(path.read_text(encoding="utf-8")))
