"""Authenticated LLM gateway and concurrent multi-provider client."""

__version__ = "0.1.0"
