# opconsole/transport/factory.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from opconsole.transport.base import StreamTransport
from opconsole.transport.registry import StreamDriverRegistry
from opconsole.transport.errors import TransportError
from opconsole.core.errors import StreamDriverError


class StreamFactory:
    """
    Builds a fresh stream transport for every connection attempt.
    Note: does NOT open the transport.

    The driver key is validated up front so a misconfigured console fails at
    startup instead of on the first connect().
    """

    def __init__(
        self,
        driver: str,
        url: str,
        *,
        drivers: Optional[StreamDriverRegistry] = None,
        params: Optional[Dict[str, Any]] = None,
    ):
        self._drivers = drivers or StreamDriverRegistry.default()
        if driver not in self._drivers:
            raise StreamDriverError(
                f"Unknown stream driver '{driver}'.",
                hint=f"Valid drivers: {self._drivers.keys()}",
                details={"driver": driver},
            )
        self.driver = driver
        self.url = url
        self._params = dict(params or {})

    def __call__(self) -> StreamTransport:
        return self.create()

    def create(self) -> StreamTransport:
        try:
            return self._drivers.create(self.driver, url=self.url, **self._params)
        except (TransportError, TypeError) as e:
            logging.getLogger(__name__).exception("STREAM_DRIVER_INIT_FAILED driver=%s", self.driver)
            raise StreamDriverError(
                f"Failed to construct stream driver '{self.driver}'.",
                hint=str(e),
                details={"driver": self.driver, "url": self.url, "params": dict(self._params)},
            ) from None
