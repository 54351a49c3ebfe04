from __future__ import annotations

from typing import Dict, Mapping, Type

from .base import StreamTransport
from .websocket_stream import WebSocketTransport
from .errors import TransportError

DEFAULT_DRIVERS: Mapping[str, Type[StreamTransport]] = {
    "websocket": WebSocketTransport,
}


class StreamDriverRegistry:
    """Lookup table from a config `stream_driver` name to its transport class."""

    def __init__(self, drivers: Mapping[str, Type[StreamTransport]]):
        # names compare case-insensitively, as typed in YAML or on the CLI
        self._drivers: Dict[str, Type[StreamTransport]] = {name.lower(): cls for name, cls in drivers.items()}

    @classmethod
    def default(cls) -> "StreamDriverRegistry":
        return cls(DEFAULT_DRIVERS)

    def with_driver(self, name: str, transport_cls: Type[StreamTransport]) -> "StreamDriverRegistry":
        return StreamDriverRegistry({**self._drivers, name: transport_cls})

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._drivers

    def keys(self) -> list[str]:
        return sorted(self._drivers)

    def get_class(self, name: str) -> Type[StreamTransport]:
        try:
            return self._drivers[name.lower()]
        except KeyError:
            raise TransportError(f"No stream driver named '{name}' (known: {', '.join(self.keys()) or 'none'})") from None

    def create(self, name: str, *, url: str, **params) -> StreamTransport:
        # unopened; the connection manager calls open() with its listener
        return self.get_class(name)(url=url, **params)
