#!/usr/bin/env python3
"""
Query and Connection Editing Example
====================================

Builds a two-column query and a saved connection the way a settings page
would, then shows what the datasource hands to an execution backend.
"""

import json
import logging

from mqtt_datasource import SettingsStore, plugin

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main():
    print("🔗 MQTT Datasource Editing Example")
    print("=" * 60)

    # Connection settings
    store = SettingsStore()
    config_editor = plugin.mount_config_editor(None)
    config_editor.set_endpoint("127.0.0.1:1883")
    config_editor.set_username("grafana")
    config_editor.set_pending_password("change-me")
    saved = store.save("mqtt", config_editor.options, name="Local broker")

    print("\n💼 Saved connection (editor view)")
    print(json.dumps(saved.to_settings_payload(), indent=2))

    # Query with two extraction rules
    changes = []
    query_editor = plugin.mount_query_editor({"refId": "A"}, changes.append)
    query_editor.set_topic("sensors/room1")
    query_editor.update_rule_alias(0, "raw")
    query_editor.append_rule()
    query_editor.update_rule_path(1, "$.temperature")
    query_editor.update_rule_alias(1, "temperature")
    query_editor.update_rule_type(1, "number")

    print(f"\n📊 Saved query after {len(changes)} edits")
    print(json.dumps(query_editor.query.to_payload(), indent=2))

    print("\n🔍 Frame columns")
    for field in query_editor.query.output_columns():
        print(f"  {field.name}: {field.kind}")

    datasource = plugin.new_instance(store.instance_settings("mqtt"))
    print(f"\n✅ Broker URL: {datasource.settings.broker_url()}")
    print(f"   Stream channel: {datasource.stream_channel()}")


if __name__ == "__main__":
    main()
