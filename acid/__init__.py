"""Networking building blocks: timers, named threads, addresses, URIs, sockets and a threaded TCP server."""

__version__ = "0.1.0"