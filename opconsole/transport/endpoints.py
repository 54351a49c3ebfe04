# opconsole/transport/endpoints.py
"""
URL derivation for the two channels of the console.

Both channels share one host; `secure` selects the TLS variant of each
(wss:// + https://) so the console never mixes a secure stream with a
plaintext control channel.
"""

from __future__ import annotations


def _normalize_path(path: str) -> str:
    path = (path or "").strip()
    if not path.startswith("/"):
        path = "/" + path
    return path.rstrip("/") or "/"


def stream_url(host: str, path: str = "/ws/logs", *, secure: bool = False) -> str:
    scheme = "wss" if secure else "ws"
    return f"{scheme}://{host}{_normalize_path(path)}"


def control_base_url(host: str, prefix: str = "/api", *, secure: bool = False) -> str:
    scheme = "https" if secure else "http"
    prefix = _normalize_path(prefix)
    if prefix == "/":
        prefix = ""
    return f"{scheme}://{host}{prefix}"
