"""Remote resource store: HTTP client, token acquisition and response cache."""

from __future__ import annotations

from agrippa.remote.base import RemoteStore
from agrippa.remote.client import RemoteClient

__all__ = ["RemoteClient", "RemoteStore"]
