from __future__ import annotations
import os
from datetime import timedelta
from typing import Any, Optional, Sequence

import click
import typer
from click.core import ParameterSource

from .util import parse_duration


OPAMP_BRIDGE_NAME = "opamp-bridge"
DEFAULT_CONFIG_FILE_PATH = "/conf/remoteconfiguration.yaml"
DEFAULT_SERVER_LISTEN_ADDR = ":8080"
DEFAULT_HEARTBEAT_INTERVAL = timedelta(seconds=30)
DEFAULT_KUBE_CONFIG_PATH = os.path.join(os.path.expanduser("~"), ".kube", "config")
DEFAULT_LOG_LEVEL = "info"

LOG_LEVELS = ("debug", "info", "warning", "error")


def _duration(value: Any) -> timedelta:
    if isinstance(value, timedelta):
        return value
    try:
        return parse_duration(str(value))
    except ValueError as e:
        raise typer.BadParameter(str(e))


def _log_level(value: str) -> str:
    v = value.strip().lower()
    if v not in LOG_LEVELS:
        raise typer.BadParameter(f"Invalid log level {value!r}. Use one of: {', '.join(LOG_LEVELS)}.")
    return v


# Shared by the flag schema below and the console script in cli.py.
CONFIG_FILE_OPTION = typer.Option(DEFAULT_CONFIG_FILE_PATH, "--config-file", help="The path to the config file.")
KUBECONFIG_PATH_OPTION = typer.Option(
    DEFAULT_KUBE_CONFIG_PATH, "--kubeconfig-path", help="Absolute path to the kubeconfig file."
)
LISTEN_ADDR_OPTION = typer.Option(
    DEFAULT_SERVER_LISTEN_ADDR, "--listen-addr", help="The address where this service serves."
)
HEARTBEAT_INTERVAL_OPTION = typer.Option(
    "30s",
    "--heartbeat-interval",
    callback=_duration,
    help="The interval to use for sending a heartbeat. Setting it to 0 disables the heartbeat.",
)
NAME_OPTION = typer.Option(
    OPAMP_BRIDGE_NAME, "--name", help="The name of the bridge to use for querying managed collectors."
)
LOG_LEVEL_OPTION = typer.Option(DEFAULT_LOG_LEVEL, "--log-level", callback=_log_level, help="Logging verbosity.")


_schema_app = typer.Typer(add_completion=False)


@_schema_app.command(name=OPAMP_BRIDGE_NAME)
def _flag_schema(
    config_file: str = CONFIG_FILE_OPTION,
    kubeconfig_path: str = KUBECONFIG_PATH_OPTION,
    listen_addr: str = LISTEN_ADDR_OPTION,
    heartbeat_interval: str = HEARTBEAT_INTERVAL_OPTION,
    name: str = NAME_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
) -> None:
    pass


def get_flag_set() -> click.Command:
    return typer.main.get_command(_schema_app)


class FlagSet:
    """Parsed command line flags that remember which ones were given explicitly."""

    def __init__(self, ctx: click.Context) -> None:
        self._ctx = ctx

    def value(self, name: str) -> Any:
        return self._ctx.params[name]

    def changed(self, name: str) -> bool:
        return self._ctx.get_parameter_source(name) == ParameterSource.COMMANDLINE

    def lookup(self, name: str) -> tuple[Any, bool]:
        return self.value(name), self.changed(name)

    @property
    def log_level(self) -> str:
        return self.value("log_level")

    def config_file_path(self) -> tuple[str, bool]:
        return self.lookup("config_file")

    def kube_config_file_path(self) -> tuple[str, bool]:
        return self.lookup("kubeconfig_path")

    def listen_addr(self) -> tuple[str, bool]:
        return self.lookup("listen_addr")

    def heartbeat_interval(self) -> tuple[timedelta, bool]:
        return self.lookup("heartbeat_interval")

    def name(self) -> tuple[str, bool]:
        return self.lookup("name")


def parse_flags(args: Optional[Sequence[str]] = None) -> FlagSet:
    """Parse ``args`` against the flag schema.

    Raises ``click.UsageError`` on malformed flags and ``click.exceptions.Exit``
    for ``--help``.
    """
    command = get_flag_set()
    ctx = command.make_context(OPAMP_BRIDGE_NAME, list(args or []))
    return FlagSet(ctx)
