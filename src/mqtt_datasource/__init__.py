"""MQTT Datasource

Query and connection configuration for turning MQTT topic messages into
time-series frames, with the editors used to change them.
"""

from .models import (
    ExtractionRule,
    FrameField,
    QueryDefinition,
    ValueType,
    with_defaults,
)
from .connection import ConnectionConfiguration, ConnectionSettings, SecretCredential
from .editors import ConfigEditor, QueryEditor, RuleIndexError
from .host import InstanceSettings, SettingsStore
from .datasource import (
    HealthResult,
    HealthStatus,
    MqttDataSource,
    QueryExecutor,
    QueryRequest,
    QueryResult,
    StreamResult,
    StreamStatus,
)
from .plugin import DataSourcePlugin, PluginRegistrationError, plugin

__all__ = [
    # Query model
    "ExtractionRule",
    "FrameField",
    "QueryDefinition",
    "ValueType",
    "with_defaults",

    # Connection model
    "ConnectionConfiguration",
    "ConnectionSettings",
    "SecretCredential",

    # Editors
    "ConfigEditor",
    "QueryEditor",
    "RuleIndexError",

    # Host
    "InstanceSettings",
    "SettingsStore",

    # Datasource
    "MqttDataSource",
    "QueryExecutor",
    "QueryRequest",
    "QueryResult",
    "HealthResult",
    "HealthStatus",
    "StreamResult",
    "StreamStatus",

    # Registration
    "DataSourcePlugin",
    "PluginRegistrationError",
    "plugin",
]

__version__ = "0.1.0"
