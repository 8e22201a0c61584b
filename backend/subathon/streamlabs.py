"""Streamlabs socket API listener.

Streamlabs pushes alerts (subs, resubs, gifts, bits) as ``event`` messages on
a Socket.IO connection authenticated with a socket token. Each payload is
handed to the ingestion pipeline unchanged.
"""

import logging
from typing import Optional

import socketio
from socketio.exceptions import ConnectionError as SocketConnectionError

logger = logging.getLogger(__name__)


class StreamlabsListener:
    def __init__(self, pipeline, token: str, url: str = 'https://sockets.streamlabs.com',
                 client: Optional[socketio.Client] = None):
        self.pipeline = pipeline
        self.token = token
        self.url = url
        self.sio = client or socketio.Client(reconnection=True, reconnection_delay=5)
        self.sio.on('connect', self._on_connect)
        self.sio.on('disconnect', self._on_disconnect)
        self.sio.on('event', self._on_event)

    @property
    def connected(self) -> bool:
        return bool(self.sio.connected)

    def connect(self) -> None:
        try:
            # retry keeps trying the first connect; reconnection only covers later drops
            self.sio.connect(f"{self.url}?token={self.token}", transports=['websocket'], retry=True)
        except SocketConnectionError as exc:
            logger.error(f"[streamlabs] connection failed: {exc}")

    def disconnect(self) -> None:
        # also stops a connect retry still in progress
        self.sio.shutdown()

    def _on_connect(self):
        logger.info("[streamlabs] connected")

    def _on_disconnect(self, *_args):
        logger.warning("[streamlabs] disconnected")

    def _on_event(self, data):
        logger.debug(f"[streamlabs-event] {data!r}")
        self.pipeline.ingest(data)
