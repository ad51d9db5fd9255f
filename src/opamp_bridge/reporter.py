from __future__ import annotations
from typing import TYPE_CHECKING, Iterable, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import AgentCapabilities
from .util import format_duration

if TYPE_CHECKING:
    from .config import Config


class Reporter:
    """Renders the resolved bridge configuration."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def _panel(self, title: str, rows: Iterable[Tuple[str, str]], left: str = "Setting") -> None:
        table = Table(show_header=True, header_style="bold")
        table.add_column(left, style="bold")
        table.add_column("Value")
        for key, value in rows:
            table.add_row(key, value)
        self.console.print(Panel.fit(table, title=Text(title, style="bold blue")))

    def config(self, cfg: Config) -> None:
        scheme = cfg.get_agent_scheme()
        self._panel(
            "Configuration",
            [
                ("name", cfg.name),
                ("endpoint", cfg.endpoint or "-"),
                ("transport", "http" if scheme in ("http", "https") else "websocket"),
                ("listen address", cfg.listen_addr or "-"),
                ("heartbeat interval", format_duration(cfg.heartbeat_interval)),
                ("kubeconfig", cfg.kube_config_file_path or "(in-cluster)"),
                ("cluster", getattr(cfg.cluster_config, "host", None) or "-"),
                ("headers", ", ".join(sorted(cfg.headers)) or "-"),
            ],
        )

    def capabilities(self, cfg: Config) -> None:
        bits = cfg.get_capabilities()
        rows = [
            (flag.name, "✅" if flag in bits else "-")
            for flag in AgentCapabilities
            if flag.value
        ]
        rows.append(("bitmask", f"0x{int(bits):x}"))
        self._panel("Capabilities", rows, left="Capability")

    def description(self, cfg: Config) -> None:
        desc = cfg.get_description()
        rows = [(kv.key, kv.value.string_value) for kv in desc.identifying_attributes]
        rows += [(kv.key, kv.value.string_value) for kv in desc.non_identifying_attributes]
        self._panel("Agent description", rows, left="Attribute")

    def components(self, cfg: Config) -> None:
        allowed = cfg.get_components_allowed()
        if not allowed:
            return
        rows = [(kind, ", ".join(sorted(names))) for kind, names in sorted(allowed.items())]
        self._panel("Allowed components", rows, left="Pipeline kind")

    def all(self, cfg: Config) -> None:
        self.config(cfg)
        self.capabilities(cfg)
        self.description(cfg)
        self.components(cfg)
