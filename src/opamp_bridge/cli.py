from __future__ import annotations
import typer
from rich.console import Console

from .config import load_from_flags
from .errors import ConfigError
from .flags import (
    CONFIG_FILE_OPTION,
    HEARTBEAT_INTERVAL_OPTION,
    KUBECONFIG_PATH_OPTION,
    LISTEN_ADDR_OPTION,
    LOG_LEVEL_OPTION,
    NAME_OPTION,
    OPAMP_BRIDGE_NAME,
    FlagSet,
)
from .log import get_logger
from .reporter import Reporter
from .transport import create_client

app = typer.Typer(add_completion=False, name=OPAMP_BRIDGE_NAME)


@app.command()
def run(
    ctx: typer.Context,
    config_file: str = CONFIG_FILE_OPTION,
    kubeconfig_path: str = KUBECONFIG_PATH_OPTION,
    listen_addr: str = LISTEN_ADDR_OPTION,
    heartbeat_interval: str = HEARTBEAT_INTERVAL_OPTION,
    name: str = NAME_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
):
    """Resolve the bridge configuration, build its clients and print the result."""
    console = Console()
    logger = get_logger(log_level)
    try:
        cfg = load_from_flags(logger, FlagSet(ctx))
    except (ConfigError, OSError) as e:
        logger.error("failed to load config: %s", e)
        raise typer.Exit(code=1)

    client = create_client(cfg)
    try:
        logger.info("instance id %s", cfg.get_instance_id())
        logger.info("using %s for endpoint %s", type(client).__name__, cfg.endpoint or "-")
        if not cfg.remote_config_enabled():
            logger.info("remote configuration is disabled")
        kube = cfg.get_kubernetes_client()
        try:
            Reporter(console).all(cfg)
        finally:
            kube.close()
    finally:
        client.close()


if __name__ == "__main__":
    app()
