from __future__ import annotations
import os
import re
from datetime import timedelta
from typing import Mapping, Optional
from urllib.parse import urlsplit


_ENV_REF = re.compile(r"\$(?:\{([^}]*)\}|([A-Za-z0-9_]+))")

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

_UNIT_NANOS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}


def expand_env(text: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """Replace ``${VAR}`` and ``$VAR`` with values from the environment.

    Unset variables expand to the empty string.
    """
    env = os.environ if environ is None else environ

    def _sub(m: re.Match) -> str:
        name = m.group(1) if m.group(1) is not None else m.group(2)
        return env.get(name, "")

    return _ENV_REF.sub(_sub, text)


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as ``30s``, ``1m30s`` or ``1.5h``."""
    s = value.strip()
    if not s:
        raise ValueError("invalid duration: empty string")
    sign = 1
    if s[0] in "+-":
        sign = -1 if s[0] == "-" else 1
        s = s[1:]
    if s == "0":
        return timedelta(0)
    pos = 0
    nanos = 0.0
    while pos < len(s):
        m = _DURATION_PART.match(s, pos)
        if not m:
            raise ValueError(f"invalid duration: {value!r}")
        nanos += float(m.group(1)) * _UNIT_NANOS[m.group(2)]
        pos = m.end()
    if pos == 0:
        raise ValueError(f"invalid duration: {value!r}")
    return timedelta(microseconds=sign * nanos / 1_000)


def format_duration(value: timedelta) -> str:
    """Render a timedelta the way ``parse_duration`` reads it."""
    total = value.total_seconds()
    if total == 0:
        return "0s"
    sign = "-" if total < 0 else ""
    total = abs(total)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    out = ""
    if hours:
        out += f"{int(hours)}h"
    if hours or minutes:
        out += f"{int(minutes)}m"
    out += f"{seconds:g}s"
    return sign + out


def request_uri_scheme(raw: str) -> str:
    """Return the scheme of an absolute request URI, or "" if there is none.

    Spaces are allowed in the path and query. Control characters anywhere,
    or whitespace in the host, make the URI invalid.
    """
    if not raw or raw[0].isspace():
        return ""
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in raw):
        return ""
    try:
        parts = urlsplit(raw)
    except ValueError:
        return ""
    if any(ch.isspace() for ch in parts.netloc):
        return ""
    if not parts.scheme and not raw.startswith("/"):
        return ""
    return parts.scheme.lower()
