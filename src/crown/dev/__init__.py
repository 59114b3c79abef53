"""Development preview server with live reload."""

from crown.dev.server import DevServer, LiveReloadHub, format_sse

__all__ = ["DevServer", "LiveReloadHub", "format_sse"]
