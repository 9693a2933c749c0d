"""
Connection handling on top of asyncio streams.
"""

from .connection import Connection, ConnectionState

__all__ = ["Connection", "ConnectionState"]
