"""
Client-side fan-out to multiple LLM providers.

Usage:
    from llm_relay.providers import ProviderFanoutOrchestrator

    async with httpx.AsyncClient(timeout=None) as http:
        orchestrator = ProviderFanoutOrchestrator(http, signer=RequestSigner(secret))

        # One JSON exchange per provider
        results = await orchestrator.dispatch(text, action, providers)

        # Streamed, with the growing text per provider
        results = await orchestrator.dispatch(text, action, providers, on_partial=render)
"""

from .catalog import CatalogClient
from .results import ResultCollector, parse_structured_output
from .router import CancellationPolicy, ProviderFanoutOrchestrator
from .speech import SpeechClient
from .streaming import CancellationToken, StreamingAggregator

__all__ = [
    "CancellationPolicy",
    "CancellationToken",
    "CatalogClient",
    "ProviderFanoutOrchestrator",
    "ResultCollector",
    "SpeechClient",
    "StreamingAggregator",
    "parse_structured_output",
]
