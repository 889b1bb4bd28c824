"""Flare Fixer - repair PDF pages whose text layer is missing or garbled."""

__version__ = "0.1.0"
