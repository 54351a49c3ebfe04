# opconsole/transport/errors.py
from __future__ import annotations


class TransportError(Exception):
    """Base class for stream transport failures."""


class TransportOpenError(TransportError):
    """The stream could not start connecting (bad URL, client setup failure)."""


class TransportReuseError(TransportError):
    """open() called on a transport instance that was already opened once."""
