"""Forwarding HTTP proxy with an in-memory FIFO or LRU response cache."""

__version__ = "0.1.0"
__all__ = ["cache", "netio", "proxy", "request"]