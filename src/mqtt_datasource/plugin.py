"""Plugin registrar binding the datasource and its two editors."""

from __future__ import annotations
import logging
from typing import Any, Callable, Optional, Type

from .connection import ConnectionConfiguration
from .datasource import MqttDataSource, QueryExecutor
from .editors.config_editor import ConfigEditor
from .editors.query_editor import QueryEditor
from .host import InstanceSettings
from .models import QueryDefinition, RawQuery, with_defaults

logger = logging.getLogger(__name__)


class PluginRegistrationError(RuntimeError):
    """Raised when a plugin is used before all of its slots are filled."""


class DataSourcePlugin:
    """One datasource constructor plus its config and query editors.

    Example:
        plugin = (DataSourcePlugin(MqttDataSource)
                  .set_config_editor(ConfigEditor)
                  .set_query_editor(QueryEditor))
    """

    def __init__(self, datasource_factory: Callable[..., Any]):
        self.datasource_factory = datasource_factory
        self.config_editor: Optional[Type[ConfigEditor]] = None
        self.query_editor: Optional[Type[QueryEditor]] = None

    def set_config_editor(self, editor: Type[ConfigEditor]) -> "DataSourcePlugin":
        self.config_editor = editor
        return self

    def set_query_editor(self, editor: Type[QueryEditor]) -> "DataSourcePlugin":
        self.query_editor = editor
        return self

    @property
    def is_complete(self) -> bool:
        return all([self.datasource_factory, self.config_editor, self.query_editor])

    def _require_complete(self) -> None:
        if not self.is_complete:
            missing = [
                name for name, slot in (
                    ("datasource", self.datasource_factory),
                    ("config editor", self.config_editor),
                    ("query editor", self.query_editor),
                ) if not slot
            ]
            raise PluginRegistrationError(
                f"Plugin is missing: {', '.join(missing)}")

    def new_instance(self, settings: InstanceSettings,
                     executor: Optional[QueryExecutor] = None) -> Any:
        """Construct the connection object for a datasource instance."""
        self._require_complete()
        logger.info(f"Creating datasource instance '{settings.uid}'")
        return self.datasource_factory(settings, executor)

    def mount_config_editor(
        self,
        config: Optional[ConnectionConfiguration],
        on_change: Optional[Callable[[ConnectionConfiguration], Any]] = None,
    ) -> ConfigEditor:
        self._require_complete()
        return self.config_editor(config, on_change)

    def mount_query_editor(
        self,
        query: RawQuery,
        on_change: Optional[Callable[[QueryDefinition], Any]] = None,
    ) -> QueryEditor:
        self._require_complete()
        return self.query_editor(with_defaults(query), on_change)


plugin = (
    DataSourcePlugin(MqttDataSource)
    .set_config_editor(ConfigEditor)
    .set_query_editor(QueryEditor)
)
