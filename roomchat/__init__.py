"""Multi-room chat over newline-delimited JSON: wire format, transport, server and client state."""

__version__ = "0.1.0"