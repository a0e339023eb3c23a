"""
Resilient Executor
==================

Execution gateway in front of every text-generation provider.

Adds, on top of a raw provider call:
- Response caching keyed by request head, agent and phase
- Cycle-context prompt enrichment
- Bounded retries with exponential backoff and per-attempt timeouts
- Escalation to a configured fallback provider
- Quality metrics, confidence scoring and execution statistics
"""

import asyncio
import time
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, Dict, List, Optional, Tuple

from core.errors import ExecutionExhaustedError, ProviderUnavailableError
from core.quality import assess_quality, compute_confidence
from core.response_cache import ResponseCache, make_cache_key
from core.schemas import (
    ExecutionMetadata,
    ExecutionResult,
    GatewayContext,
    GatewayStats,
    ProviderConfig,
    ProviderKind,
    ProviderProbe,
    ProviderResponse,
)
from core.timeout_decorator import call_with_timeout
from providers.base import TextGenerationProvider
from providers.factory import create_provider

logger = logging.getLogger(__name__)

CONTEXT_GUIDELINES = (
    "Respond as a reflective agent taking part in a shared inquiry.",
    "Favor careful reasoning and original insight over summary.",
    "Keep the other agents in mind and aim for constructive dialogue.",
    "Treat uncertainty and open questions as part of the answer.",
)

MAX_BACKOFF_MS = 10000


class _ProviderEntry:
    """Registered provider: config plus the clients that could be built."""

    def __init__(
        self,
        config: ProviderConfig,
        client: Optional[TextGenerationProvider],
        client_error: Optional[str],
        fallback_client: Optional[TextGenerationProvider] = None,
        fallback_error: Optional[str] = None,
    ):
        self.config = config
        self.client = client
        self.client_error = client_error
        self.fallback_client = fallback_client
        self.fallback_error = fallback_error


class ResilientExecutor:
    """
    Execution gateway with caching, retries and fallback escalation.

    Constructed explicitly and passed to the stages; there is no module
    level instance.

    Example:
        >>> gateway = ResilientExecutor()
        >>> gateway.register_provider("mock", ProviderConfig(kind=ProviderKind.MOCK, model="m"))
        >>> result = await gateway.execute_with_context(
        ...     "mock", "Is solitude a form of dissonance?", "You are theoria.",
        ...     GatewayContext(agent_id="theoria"),
        ... )
        >>> result.metadata.execution_path
        ['mock']
    """

    def __init__(
        self,
        cache_lifetime_seconds: float = 30 * 60,
        max_cache_entries: int = 512,
        history_size: int = 500,
        trend_size: int = 100,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize gateway.

        Args:
            cache_lifetime_seconds: How long a cached result stays valid
            max_cache_entries: Hard bound on cache size
            history_size: Number of executions kept in history
            trend_size: Samples kept per quality metric
            sleep: Awaitable sleep used for backoff (injectable for tests)
            clock: Monotonic clock used by the cache
        """
        self._providers: Dict[str, _ProviderEntry] = {}
        self._cache = ResponseCache(cache_lifetime_seconds, max_cache_entries, clock)
        self._sleep = sleep
        self._lock = asyncio.Lock()

        self._history: Deque[ExecutionResult] = deque(maxlen=history_size)
        self._trends: Dict[str, Deque[float]] = {
            name: deque(maxlen=trend_size)
            for name in ("coherence", "creativity", "depth", "relevance", "philosophical_depth")
        }
        self._total = 0
        self._successful = 0
        self._failed = 0
        self._cache_hits = 0
        self._avg_latency_ms = 0.0
        self._avg_confidence = 0.0
        self._provider_usage: Dict[str, int] = {}
        self._model_usage: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_provider(
        self,
        name: str,
        config: ProviderConfig,
        client: Optional[TextGenerationProvider] = None,
        fallback_client: Optional[TextGenerationProvider] = None,
    ) -> bool:
        """
        Register a provider under a name.

        Client construction failures are logged and the provider is kept as
        unusable; they are never raised.

        Args:
            name: Registry name
            config: Provider configuration (may carry a fallback config)
            client: Prebuilt client; built from config when omitted
            fallback_client: Prebuilt fallback client; built from config.fallback when omitted

        Returns:
            True if the primary client is usable
        """
        client, client_error = self._build_client(name, config, client)

        fb_client, fb_error = None, None
        if config.fallback is not None:
            fb_client, fb_error = self._build_client(
                f"{name}:fallback", config.fallback, fallback_client
            )

        self._providers[name] = _ProviderEntry(config, client, client_error, fb_client, fb_error)
        if client is not None:
            logger.info(f"✅ [Gateway] Registered provider '{name}' ({config.kind.value}/{config.model})")
        return client is not None

    @staticmethod
    def _build_client(
        name: str,
        config: ProviderConfig,
        client: Optional[TextGenerationProvider],
    ) -> Tuple[Optional[TextGenerationProvider], Optional[str]]:
        if client is not None:
            return client, None
        try:
            return create_provider(config), None
        except Exception as e:
            error = ProviderUnavailableError(name, str(e))
            logger.warning(f"⚠️ [Gateway] {error}")
            return None, str(error)

    def available_providers(self) -> List[str]:
        """Names of providers whose primary client is usable."""
        return [name for name, entry in self._providers.items() if entry.client is not None]

    def is_registered(self, name: str) -> bool:
        return name in self._providers

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute_with_context(
        self,
        provider_name: str,
        prompt: str,
        system_prompt: str,
        context: GatewayContext,
    ) -> ExecutionResult:
        """
        Execute one request with caching, retries and fallback.

        Args:
            provider_name: Registered provider name
            prompt: User prompt
            system_prompt: System instructions
            context: Cycle context folded into the prompt

        Returns:
            ExecutionResult (a flagged copy when served from cache)

        Raises:
            ProviderUnavailableError: Unknown provider, or no usable client at all
            ExecutionExhaustedError: Primary (and fallback, if any) exhausted
        """
        entry = self._providers.get(provider_name)
        if entry is None:
            raise ProviderUnavailableError(provider_name)
        if entry.client is None and entry.fallback_client is None:
            raise ProviderUnavailableError(provider_name, entry.client_error or "no usable client")

        cache_key = make_cache_key(prompt, system_prompt, context)
        async with self._lock:
            cached = self._cache.get(cache_key)
            if cached is not None:
                self._cache_hits += 1
        if cached is not None:
            logger.info(f"📦 [Gateway] Cache hit for {context.agent_id}/{context.phase}")
            return cached.as_cache_hit()

        enhanced_prompt = self.enhance_prompt(prompt, context)
        enhanced_system_prompt = self.enhance_system_prompt(system_prompt)

        started = time.perf_counter()
        config = entry.config
        execution_path = [provider_name]
        fallback_used = False

        response, primary_error, retry_count = await self._execute_with_retry(
            provider_name, entry.client, entry.client_error, config,
            enhanced_prompt, enhanced_system_prompt, execution_path,
        )
        used_config = config

        if response is None:
            if config.fallback is None:
                await self._record_failure()
                raise ExecutionExhaustedError(primary_error)

            logger.warning(f"⚠️ [Gateway] Primary provider {provider_name} failed, trying fallback...")
            fallback_used = True
            execution_path.extend(["fallback", config.fallback.label])
            response, fallback_error, fallback_retries = await self._execute_with_retry(
                config.fallback.label, entry.fallback_client, entry.fallback_error, config.fallback,
                enhanced_prompt, enhanced_system_prompt, execution_path,
            )
            retry_count += fallback_retries
            used_config = config.fallback
            if response is None:
                await self._record_failure()
                logger.error(f"❌ [Gateway] Primary and fallback exhausted for '{provider_name}'")
                raise ExecutionExhaustedError(primary_error, fallback_error)

        content = response.content or ""
        metrics = assess_quality(content, context.previous_thoughts)
        result = ExecutionResult(
            success=True,
            content=content,
            provider_used=used_config.kind.value,
            model_used=used_config.model,
            processing_time_ms=(time.perf_counter() - started) * 1000,
            confidence_score=compute_confidence(content, metrics, response.metadata.get("confidence")),
            quality_metrics=metrics,
            metadata=ExecutionMetadata(
                retry_count=retry_count,
                fallback_used=fallback_used,
                cache_hit=False,
                execution_path=execution_path,
            ),
        )

        async with self._lock:
            self._cache.put(cache_key, result.model_copy(deep=True))
            self._record_success(result)

        return result

    async def _execute_with_retry(
        self,
        label: str,
        client: Optional[TextGenerationProvider],
        client_error: Optional[str],
        config: ProviderConfig,
        prompt: str,
        system_prompt: str,
        execution_path: List[str],
    ) -> Tuple[Optional[ProviderResponse], Optional[str], int]:
        """
        Run the retry loop for one provider.

        Returns:
            (response or None, last error message, number of retries performed)
        """
        if client is None:
            return None, client_error or f"Provider '{label}' has no usable client", 0

        last_error: Optional[str] = None
        retries = 0
        for attempt in range(config.retry_attempts + 1):
            try:
                response = await call_with_timeout(
                    client.execute(prompt, system_prompt), config.timeout_ms, label
                )
                if response.success and response.content and response.content.strip():
                    return response, None, retries
                last_error = response.error or "Provider returned empty content"
            except Exception as e:
                last_error = str(e) or type(e).__name__

            logger.warning(
                f"⚠️ [Gateway] {label} attempt {attempt + 1}/{config.retry_attempts + 1} failed: {last_error}"
            )
            if attempt < config.retry_attempts:
                delay_ms = min(1000 * 2 ** attempt, MAX_BACKOFF_MS)
                await self._sleep(delay_ms / 1000)
                retries += 1
                execution_path.append(f"retry_{attempt + 1}")

        return None, last_error, retries

    @staticmethod
    def enhance_prompt(prompt: str, context: GatewayContext) -> str:
        """Prepend the cycle-context header to a prompt."""
        lines = [
            "[Cycle context]",
            f"Agent: {context.agent_id}",
            f"System clock: {context.system_clock}",
            f"Phase: {context.phase}",
            f"Energy level: {context.energy_level * 100:.1f}%",
        ]
        if context.previous_thoughts:
            lines.append(f"Previous thoughts: {' / '.join(context.previous_thoughts[-2:])}")
        if context.question_history:
            lines.append(f"Recent question: {context.question_history[-1]}")
        if context.conversation_context:
            lines.append(f"Conversation: {context.conversation_context}")
        return "\n".join(lines) + "\n\n" + prompt

    @staticmethod
    def enhance_system_prompt(system_prompt: str) -> str:
        """Append the fixed guideline block to a system prompt."""
        return f"{system_prompt}\n\n[Guidelines]\n" + "\n".join(CONTEXT_GUIDELINES)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    async def _record_failure(self) -> None:
        async with self._lock:
            self._total += 1
            self._failed += 1

    def _record_success(self, result: ExecutionResult) -> None:
        """Fold a fresh result into statistics. Caller holds the lock."""
        self._total += 1
        self._successful += 1
        self._provider_usage[result.provider_used] = self._provider_usage.get(result.provider_used, 0) + 1
        self._model_usage[result.model_used] = self._model_usage.get(result.model_used, 0) + 1

        n = self._successful
        self._avg_latency_ms = (self._avg_latency_ms * (n - 1) + result.processing_time_ms) / n
        self._avg_confidence = (self._avg_confidence * (n - 1) + result.confidence_score) / n

        for name, trend in self._trends.items():
            trend.append(getattr(result.quality_metrics, name))
        self._history.append(result)

    async def get_stats(self, recent: int = 10) -> GatewayStats:
        """
        Snapshot of execution statistics.

        Args:
            recent: Number of most recent executions to include
        """
        async with self._lock:
            history = list(self._history)
            return GatewayStats(
                total_executions=self._total,
                successful_executions=self._successful,
                failed_executions=self._failed,
                cache_hits=self._cache_hits,
                average_latency_ms=self._avg_latency_ms,
                average_confidence=self._avg_confidence,
                provider_usage=dict(self._provider_usage),
                model_usage=dict(self._model_usage),
                quality_trends={name: list(trend) for name, trend in self._trends.items()},
                cache_size=len(self._cache),
                recent_executions=history[-recent:] if recent > 0 else [],
            )

    async def clear_cache(self) -> None:
        async with self._lock:
            self._cache.clear()

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    async def test_provider(self, provider_name: str) -> ProviderProbe:
        """
        Send a canonical no-op request through the normal execution path.

        Returns:
            ProviderProbe with success flag, latency and error message
        """
        started = time.perf_counter()
        probe_context = GatewayContext(agent_id="probe", session_id="probe", phase="probe")
        try:
            await self.execute_with_context(
                provider_name,
                "Connectivity check. Reply with a short acknowledgement.",
                "This is a connectivity test.",
                probe_context,
            )
        except (ProviderUnavailableError, ExecutionExhaustedError) as e:
            return ProviderProbe(
                success=False,
                latency_ms=(time.perf_counter() - started) * 1000,
                error=str(e),
            )
        return ProviderProbe(success=True, latency_ms=(time.perf_counter() - started) * 1000)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "ResilientExecutor":
        """
        Build a gateway with the default provider registry.

        ``mock`` is always registered; ``openrouter`` when an API key is set
        (with ``mock`` as fallback); ``ollama`` when a base URL is set.

        Args:
            settings: core.settings.Settings
            **kwargs: Forwarded to the constructor
        """
        gateway = cls(cache_lifetime_seconds=settings.gateway_cache_minutes * 60, **kwargs)
        mock_config = ProviderConfig(
            kind=ProviderKind.MOCK,
            model=settings.mock_model,
            retry_attempts=min(2, settings.gateway_retry_attempts),
            timeout_ms=settings.gateway_timeout_ms,
        )
        gateway.register_provider("mock", mock_config)

        if settings.openrouter_api_key:
            gateway.register_provider("openrouter", ProviderConfig(
                kind=ProviderKind.OPENROUTER,
                model=settings.openrouter_model,
                api_key=settings.openrouter_api_key,
                endpoint=settings.openrouter_base_url,
                retry_attempts=settings.gateway_retry_attempts,
                timeout_ms=settings.gateway_timeout_ms,
                fallback=mock_config,
            ))

        if settings.ollama_base_url:
            gateway.register_provider("ollama", ProviderConfig(
                kind=ProviderKind.OLLAMA,
                model=settings.ollama_model,
                endpoint=settings.ollama_base_url,
                retry_attempts=settings.gateway_retry_attempts,
                timeout_ms=settings.gateway_timeout_ms,
                fallback=mock_config,
            ))

        return gateway
