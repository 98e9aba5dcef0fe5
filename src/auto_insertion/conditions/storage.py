"""Client storage reader used by compiled conditions.

Mirrors what the browser exposes: a persistent key/value store checked first,
with cookies as the secondary store. Values that look like JSON are decoded,
everything else comes back as the raw string.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional


def parse_cookie_header(header: str | None) -> dict[str, str]:
    """Split a ``Cookie`` header into a name → raw value mapping.

    The first occurrence of a name wins, matching a left-to-right scan.
    """
    cookies: dict[str, str] = {}
    for part in (header or "").split(";"):
        part = part.lstrip(" ")
        if "=" not in part:
            continue
        name, value = part.split("=", 1)
        cookies.setdefault(name, value)
    return cookies


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def _decode(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    try:
        # NaN and Infinity stay as the raw string
        return json.loads(value, parse_constant=_reject_constant)
    except ValueError:
        return value


class StorageReader:
    """Read-only lookup over a primary store with cookie fallback."""

    def __init__(
        self,
        primary: Optional[Mapping[str, Any]] = None,
        secondary: Optional[Mapping[str, Any]] = None,
    ):
        self._primary = dict(primary or {})
        self._secondary = dict(secondary or {})

    @classmethod
    def from_snapshot(cls, snapshot: Mapping[str, Any]) -> StorageReader:
        """Build a reader from ``{"local_storage": {...}, "cookies": "a=1; b=2"}``.

        ``cookies`` may also be given as a mapping.
        """
        cookies = snapshot.get("cookies") or {}
        if isinstance(cookies, str):
            cookies = parse_cookie_header(cookies)
        return cls(primary=snapshot.get("local_storage") or {}, secondary=cookies)

    def read(self, key: str) -> Any:
        """Return the decoded value for ``key``, or None when absent."""
        if key in self._primary and self._primary[key] is not None:
            return _decode(self._primary[key])
        if key in self._secondary and self._secondary[key] is not None:
            return _decode(self._secondary[key])
        return None

    __call__ = read
