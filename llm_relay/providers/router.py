"""
Concurrent fan-out of one request to many providers.

Every provider gets its own task. Tasks never cancel or wait on each other;
the dispatch returns once all of them have finished, and each provider's
failure stays inside that provider's result.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, List, Mapping, Optional, Sequence

import httpx

from ..auth import RequestSigner
from ..errors import ClientCancellation, ProviderUnavailableError
from ..models import ActionConfig, ProviderConfig, ProviderExecutionResult
from .openai_provider import build_chat_request, build_messages
from .results import ResultCollector, parse_structured_output
from .streaming import CancellationToken, PartialCallback, StreamingAggregator, until_cancelled

logger = logging.getLogger(__name__)


class CancellationPolicy(str, Enum):
    """What to do with text that had already streamed in when the caller cancelled."""
    KEEP_PARTIAL = "keep_partial"
    DISCARD = "discard"


class ProviderFanoutOrchestrator:
    """
    Sends one text to a list of providers at once.

    Args:
        http_client: Shared connection pool, safe for concurrent use
        signer: Signs requests to built-in cloud providers
        premium: Whether the caller is entitled to premium models
        partial_interval: Minimum seconds between streamed updates per provider
        cancellation_policy: Keep or drop partial text on cancellation
        max_concurrency: Upper bound on simultaneous provider requests
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        signer: Optional[RequestSigner] = None,
        premium: bool = False,
        partial_interval: float = 0.0,
        cancellation_policy: CancellationPolicy = CancellationPolicy.KEEP_PARTIAL,
        max_concurrency: Optional[int] = None,
    ):
        self._http = http_client
        self._signer = signer
        self._premium = premium
        self._partial_interval = partial_interval
        self._cancellation_policy = cancellation_policy
        self._max_concurrency = max_concurrency
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def aclose(self) -> None:
        """Stop accepting work. The HTTP client belongs to the caller and stays open."""
        self._closed = True

    async def __aenter__(self) -> "ProviderFanoutOrchestrator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def dispatch(
        self,
        text: str,
        action: ActionConfig,
        providers: Sequence[ProviderConfig],
        on_partial: Optional[PartialCallback] = None,
        *,
        images: Sequence[str] = (),
        cancel_token: Optional[CancellationToken] = None,
        cancel_tokens: Optional[Mapping[str, CancellationToken]] = None,
    ) -> List[ProviderExecutionResult]:
        """
        Query every provider concurrently.

        Args:
            text: The user's input
            action: Supplies the system prompt and the output type
            providers: Providers to query
            on_partial: Receives ``(provider_id, accumulated_text)``; enables streaming
            images: Data URLs attached for providers that accept images
            cancel_token: Aborts in-flight reads of every provider when cancelled
            cancel_tokens: Per-provider tokens keyed by provider id; these take
                precedence over ``cancel_token``

        Returns:
            One result per provider that ran, in no particular order. Providers
            that could not run are left out.
        """
        collector = ResultCollector()
        semaphore = asyncio.Semaphore(self._max_concurrency) if self._max_concurrency else None
        cancel_tokens = cancel_tokens or {}

        tasks = [
            self._bounded(
                semaphore,
                self._execute(
                    provider,
                    text,
                    action,
                    on_partial,
                    images,
                    cancel_tokens.get(provider.id, cancel_token),
                    collector,
                ),
            )
            for provider in providers
        ]
        results = collector.collect(await asyncio.gather(*tasks))

        failures = sum(1 for result in results if not result.succeeded)
        logger.info(
            "Fan-out | providers=%d results=%d failures=%d elapsed=%.3fs",
            len(providers), len(results), failures, collector.elapsed(),
        )
        return results

    @staticmethod
    async def _bounded(semaphore: Optional[asyncio.Semaphore], work: Awaitable):
        if semaphore is None:
            return await work
        async with semaphore:
            return await work

    async def _execute(
        self,
        provider: ProviderConfig,
        text: str,
        action: ActionConfig,
        on_partial: Optional[PartialCallback],
        images: Sequence[str],
        cancel_token: Optional[CancellationToken],
        collector: ResultCollector,
    ) -> Optional[ProviderExecutionResult]:
        if self._closed:
            logger.debug("Fan-out | orchestrator closed, skipping provider=%s", provider.display_name)
            return None

        category = provider.category
        if not category.is_available:
            return collector.failure(provider.id, ProviderUnavailableError(provider.display_name))

        stream = on_partial is not None and category.supports_streaming
        messages = build_messages(text, action, images if category.supports_vision else ())
        aggregator = StreamingAggregator(
            provider.id,
            on_partial,
            min_interval=self._partial_interval,
            cancel_token=cancel_token,
        )
        diff_source = text if action.output_type.shows_diff else None

        try:
            request = build_chat_request(
                self._http,
                provider,
                messages,
                stream=stream,
                output_type=action.output_type,
                signer=self._signer,
                premium=self._premium,
            )
            response = await until_cancelled(self._http.send(request, stream=True), cancel_token)
            try:
                output = await aggregator.consume(response)
            finally:
                await response.aclose()
        except ClientCancellation as exc:
            return self._on_cancelled(provider, exc, diff_source, collector)
        except Exception as exc:
            logger.warning("Fan-out | provider=%s failed: %r", provider.display_name, exc)
            return collector.failure(provider.id, exc)

        structured = parse_structured_output(action.output_type, output)
        return collector.success(
            provider.id,
            structured.text,
            diff_source=diff_source,
            supplemental_texts=structured.supplemental_texts,
            sentence_pairs=structured.sentence_pairs,
        )

    def _on_cancelled(
        self,
        provider: ProviderConfig,
        cancellation: ClientCancellation,
        diff_source: Optional[str],
        collector: ResultCollector,
    ) -> Optional[ProviderExecutionResult]:
        partial = cancellation.partial_text.strip()
        if not partial or self._cancellation_policy is CancellationPolicy.DISCARD:
            logger.info("Fan-out | provider=%s cancelled, nothing kept", provider.display_name)
            return None
        logger.info(
            "Fan-out | provider=%s cancelled, keeping %d chars", provider.display_name, len(partial)
        )
        return collector.success(provider.id, partial, incomplete=True, diff_source=diff_source)
