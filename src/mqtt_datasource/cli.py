"""MQTT Datasource CLI"""

from __future__ import annotations
import json
import os
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table as RichTable

from .connection import ConnectionConfiguration
from .datasource import HealthStatus
from .host import SettingsStore
from .models import QueryDefinition, with_defaults
from .plugin import plugin

# Set up logging and console
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)
console = Console()

app = typer.Typer(
    help="MQTT Datasource CLI - Edit connection settings and topic queries."
)

query_app = typer.Typer(help="Saved query commands")
app.add_typer(query_app, name="query")

connection_app = typer.Typer(help="Connection settings commands")
app.add_typer(connection_app, name="connection")


def env_default(name: str, default: str | None = None) -> str | None:
    """Get environment variable with MQTT_ prefix."""
    return os.environ.get(f"MQTT_{name}", default)


@app.callback()
def main(verbose: bool = typer.Option(False, help="Enable verbose logging")):
    """Edit MQTT datasource settings and queries."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def _load_query(path: Path) -> QueryDefinition:
    if not path.exists():
        return with_defaults(None)
    return with_defaults(json.loads(path.read_text(encoding="utf-8")))


def _write_query(path: Path, query: QueryDefinition) -> None:
    path.write_text(json.dumps(query.to_payload(), indent=2), encoding="utf-8")


def _print_query(query: QueryDefinition) -> None:
    rich_table = RichTable(title=f"Topic: {query.topic}")
    rich_table.add_column("#", justify="right", style="dim")
    rich_table.add_column("Path", style="cyan")
    rich_table.add_column("Alias", style="green")
    rich_table.add_column("Type", style="yellow")

    for index, rule in enumerate(query.rules):
        rich_table.add_row(str(index), rule.path_expression,
                           rule.output_alias, rule.value_type.value)

    console.print(rich_table)
    for problem in query.problems():
        console.print(f"⚠️  {problem}", style="yellow")


def _edit_query(path: Path, edit) -> None:
    """Load a query file, apply one editor operation and write it back."""
    try:
        editor = plugin.mount_query_editor(_load_query(path))
        edit(editor)
        _write_query(path, editor.query)
        _print_query(editor.query)
    except Exception as e:
        console.print(f"❌ Error: {e}", style="red")
        raise typer.Exit(1)


@query_app.command("show")
def query_show(
    query_file: Path = typer.Argument(..., help="Saved query JSON file"),
):
    """Show a saved query with defaults applied."""
    try:
        _print_query(_load_query(query_file))
    except Exception as e:
        console.print(f"❌ Error: {e}", style="red")
        raise typer.Exit(1)


@query_app.command("set-topic")
def query_set_topic(
    query_file: Path = typer.Argument(..., help="Saved query JSON file"),
    topic: str = typer.Argument(..., help="Topic to subscribe to"),
):
    """Change the topic a query subscribes to."""
    _edit_query(query_file, lambda editor: editor.set_topic(topic))


@query_app.command("add-rule")
def query_add_rule(
    query_file: Path = typer.Argument(..., help="Saved query JSON file"),
    path: Optional[str] = typer.Option(None, help="Path expression, e.g. $.value"),
    alias: Optional[str] = typer.Option(None, help="Output column name"),
    value_type: Optional[str] = typer.Option(
        None, "--type", help="Value type (string or number)"),
):
    """Append an extraction rule, optionally setting its fields."""

    def edit(editor):
        editor.append_rule()
        index = len(editor.query.rules) - 1
        _apply_rule_changes(editor, index, path, alias, value_type)

    _edit_query(query_file, edit)


@query_app.command("update-rule")
def query_update_rule(
    query_file: Path = typer.Argument(..., help="Saved query JSON file"),
    index: int = typer.Argument(..., help="Rule position, starting at 0"),
    path: Optional[str] = typer.Option(None, help="Path expression"),
    alias: Optional[str] = typer.Option(None, help="Output column name"),
    value_type: Optional[str] = typer.Option(
        None, "--type", help="Value type (string or number)"),
):
    """Change fields of an existing extraction rule."""
    _edit_query(query_file,
                lambda editor: _apply_rule_changes(editor, index, path, alias, value_type))


@query_app.command("remove-rule")
def query_remove_rule(
    query_file: Path = typer.Argument(..., help="Saved query JSON file"),
    index: int = typer.Argument(..., help="Rule position, starting at 0"),
):
    """Remove an extraction rule."""
    _edit_query(query_file, lambda editor: editor.remove_rule(index))


def _apply_rule_changes(editor, index: int, path: Optional[str],
                        alias: Optional[str], value_type: Optional[str]) -> None:
    if path is not None:
        editor.update_rule_path(index, path)
    if alias is not None:
        editor.update_rule_alias(index, alias)
    if value_type is not None:
        editor.update_rule_type(index, value_type)


def _load_connection(store: SettingsStore, uid: str) -> ConnectionConfiguration:
    if uid in store:
        return store.load(uid)
    return ConnectionConfiguration()


def _print_connection(uid: str, config: ConnectionConfiguration) -> None:
    view = plugin.mount_config_editor(config).render()
    rich_table = RichTable(title=f"Datasource {uid}")
    rich_table.add_column("Setting", style="cyan")
    rich_table.add_column("Value", style="green")
    rich_table.add_row("Endpoint", view["endpoint"] or f"(unset, e.g. {view['endpoint_placeholder']})")
    rich_table.add_row("Username", view["username"] or "(none)")
    rich_table.add_row(
        "Password", "configured" if view["password"]["is_configured"] else "not configured")
    console.print(rich_table)


def _edit_connection(settings_file: Path, uid: str, edit) -> None:
    try:
        store = SettingsStore.load_file(settings_file)
        editor = plugin.mount_config_editor(_load_connection(store, uid))
        edit(editor)
        saved = store.save(uid, editor.options)
        store.save_file(settings_file)
        _print_connection(uid, saved)
    except Exception as e:
        console.print(f"❌ Error: {e}", style="red")
        raise typer.Exit(1)


@connection_app.command("show")
def connection_show(
    settings_file: Path = typer.Option(
        env_default("SETTINGS_FILE", "mqtt_settings.json"),
        help="Settings store file; env MQTT_SETTINGS_FILE"),
    uid: str = typer.Option(env_default("UID", "mqtt"), help="Datasource uid; env MQTT_UID"),
):
    """Show connection settings. Passwords are never printed."""
    try:
        store = SettingsStore.load_file(settings_file)
        _print_connection(uid, _load_connection(store, uid))
    except Exception as e:
        console.print(f"❌ Error: {e}", style="red")
        raise typer.Exit(1)


@connection_app.command("set")
def connection_set(
    settings_file: Path = typer.Option(
        env_default("SETTINGS_FILE", "mqtt_settings.json"),
        help="Settings store file; env MQTT_SETTINGS_FILE"),
    uid: str = typer.Option(env_default("UID", "mqtt"), help="Datasource uid; env MQTT_UID"),
    endpoint: Optional[str] = typer.Option(
        env_default("ENDPOINT"), help="Broker host:port; env MQTT_ENDPOINT"),
    username: Optional[str] = typer.Option(
        env_default("USERNAME"), help="Broker username; env MQTT_USERNAME"),
):
    """Set the broker endpoint and username."""

    def edit(editor):
        if endpoint is not None:
            editor.set_endpoint(endpoint)
        if username is not None:
            editor.set_username(username)

    _edit_connection(settings_file, uid, edit)


@connection_app.command("set-password")
def connection_set_password(
    settings_file: Path = typer.Option(
        env_default("SETTINGS_FILE", "mqtt_settings.json"),
        help="Settings store file; env MQTT_SETTINGS_FILE"),
    uid: str = typer.Option(env_default("UID", "mqtt"), help="Datasource uid; env MQTT_UID"),
    password: Optional[str] = typer.Option(
        env_default("PASSWORD"), help="Broker password; env MQTT_PASSWORD"),
):
    """Enter a new broker password and save it."""
    if password is None:
        password = Prompt.ask("Password", password=True)

    _edit_connection(settings_file, uid,
                     lambda editor: editor.set_pending_password(password))


@connection_app.command("reset-password")
def connection_reset_password(
    settings_file: Path = typer.Option(
        env_default("SETTINGS_FILE", "mqtt_settings.json"),
        help="Settings store file; env MQTT_SETTINGS_FILE"),
    uid: str = typer.Option(env_default("UID", "mqtt"), help="Datasource uid; env MQTT_UID"),
):
    """Forget the stored password."""
    _edit_connection(settings_file, uid, lambda editor: editor.reset_password())


@connection_app.command("check")
def connection_check(
    settings_file: Path = typer.Option(
        env_default("SETTINGS_FILE", "mqtt_settings.json"),
        help="Settings store file; env MQTT_SETTINGS_FILE"),
    uid: str = typer.Option(env_default("UID", "mqtt"), help="Datasource uid; env MQTT_UID"),
):
    """Run the datasource health check."""
    try:
        store = SettingsStore.load_file(settings_file)
        datasource = plugin.new_instance(store.instance_settings(uid))
        result = datasource.check_health()
    except Exception as e:
        console.print(f"❌ Error: {e}", style="red")
        raise typer.Exit(1)

    if result.status == HealthStatus.ERROR:
        console.print(f"❌ {result.message}", style="red")
        raise typer.Exit(1)
    console.print(f"✓ {result.status.value}: {result.message}")


if __name__ == "__main__":
    app()
