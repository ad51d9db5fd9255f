from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Dict, Mapping, Optional, Protocol

import httpx
from websockets.sync.client import ClientConnection, connect

if TYPE_CHECKING:
    from .config import Config


OPAMP_CONTENT_TYPE = "application/x-protobuf"
# OpAMP over WebSocket prefixes every frame with a varint header, currently always 0.
WS_MESSAGE_HEADER = b"\x00"


class Transport(Protocol):
    """Carries serialized OpAMP frames to the server."""

    endpoint: str

    def send(self, payload: bytes) -> bytes:
        ...

    def close(self) -> None:
        ...


class HttpTransport:
    """Plain HTTP transport: one POST per AgentToServer message."""

    def __init__(
        self,
        logger: logging.Logger,
        endpoint: str,
        headers: Optional[Mapping[str, str]] = None,
        timeout_s: float = 30.0,
    ) -> None:
        self.log = logger
        self.endpoint = endpoint
        merged: Dict[str, str] = {"Content-Type": OPAMP_CONTENT_TYPE}
        if headers:
            merged.update(dict(headers))
        self._client = httpx.Client(timeout=timeout_s, headers=merged)

    def send(self, payload: bytes) -> bytes:
        self.log.debug("POST %s (%d bytes)", self.endpoint, len(payload))
        resp = self._client.post(self.endpoint, content=payload)
        resp.raise_for_status()
        return resp.content

    def close(self) -> None:
        self._client.close()


class WebSocketTransport:
    """WebSocket transport, connecting lazily on first send."""

    def __init__(
        self,
        logger: logging.Logger,
        endpoint: str,
        headers: Optional[Mapping[str, str]] = None,
        open_timeout_s: float = 10.0,
    ) -> None:
        self.log = logger
        self.endpoint = endpoint
        self._headers = dict(headers or {})
        self._open_timeout_s = open_timeout_s
        self._conn: Optional[ClientConnection] = None

    def _connection(self) -> ClientConnection:
        if self._conn is None:
            self.log.debug("connecting to %s", self.endpoint)
            self._conn = connect(
                self.endpoint,
                additional_headers=self._headers,
                open_timeout=self._open_timeout_s,
            )
        return self._conn

    def send(self, payload: bytes) -> bytes:
        conn = self._connection()
        conn.send(WS_MESSAGE_HEADER + payload)
        frame = conn.recv()
        if isinstance(frame, str):
            frame = frame.encode()
        if frame[:1] == WS_MESSAGE_HEADER:
            frame = frame[1:]
        return frame

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


def create_client(config: Config) -> Transport:
    """Pick the transport for the configured endpoint.

    ``http`` and ``https`` endpoints get the HTTP transport; everything else,
    including an empty or unparsable endpoint, gets WebSocket.
    """
    client_logger = config.root_logger.getChild("client")
    agent_scheme = config.get_agent_scheme()
    if agent_scheme in ("http", "https"):
        return HttpTransport(client_logger, config.endpoint, config.headers)
    return WebSocketTransport(client_logger, config.endpoint, config.headers)
