"""
Test Execution Gateway
======================

Cache, retry, fallback escalation and statistics of ResilientExecutor.
"""

import asyncio

import pytest

from conftest import FailingProvider, ScriptedProvider, SleepRecorder, failed, gateway_with, mock_config, ok
from core.errors import ExecutionExhaustedError, ProviderTimeoutError, ProviderUnavailableError
from core.resilient_executor import ResilientExecutor
from core.schemas import GatewayContext, ProviderConfig, ProviderKind
from core.settings import Settings
from core.timeout_decorator import with_timeout
from providers.mock import MockProvider


@pytest.mark.asyncio
async def test_cache_hit_makes_no_provider_call(context):
    print("\n🧪 Test: cache hit")
    provider = MockProvider()
    gateway = gateway_with(provider)

    first = await gateway.execute_with_context("mock", "What is a promise?", "You are theoria.", context)
    second = await gateway.execute_with_context("mock", "What is a promise?", "You are theoria.", context)

    assert provider.calls == 1
    assert first.metadata.cache_hit is False
    assert second.metadata.cache_hit is True
    assert second.content == first.content

    stats = await gateway.get_stats()
    assert stats.cache_hits == 1
    assert stats.total_executions == 1
    print("✅ Second call served from cache")


@pytest.mark.asyncio
async def test_cache_distinguishes_agent_and_phase(context):
    provider = MockProvider()
    gateway = gateway_with(provider)

    await gateway.execute_with_context("mock", "What is a promise?", "sys", context)
    await gateway.execute_with_context("mock", "What is a promise?", "sys", context.model_copy(update={"agent_id": "pathia"}))
    await gateway.execute_with_context("mock", "What is a promise?", "sys", context.model_copy(update={"phase": "audit"}))

    assert provider.calls == 3


@pytest.mark.asyncio
async def test_retry_attempts_and_backoff(context, sleep_recorder):
    print("\n🧪 Test: retry_attempts=3 gives 4 attempts")
    provider = FailingProvider()
    gateway = ResilientExecutor(sleep=sleep_recorder)
    gateway.register_provider("flaky", mock_config(retry_attempts=3), client=provider)

    with pytest.raises(ExecutionExhaustedError) as excinfo:
        await gateway.execute_with_context("flaky", "prompt", "system", context)

    assert provider.calls == 4
    assert sleep_recorder.delays == [1.0, 2.0, 4.0]
    assert excinfo.value.fallback_error is None
    assert "service unavailable" in str(excinfo.value)

    stats = await gateway.get_stats()
    assert stats.failed_executions == 1
    print(f"✅ Backoff delays: {sleep_recorder.delays}")


@pytest.mark.asyncio
async def test_backoff_is_capped(context, sleep_recorder):
    gateway = ResilientExecutor(sleep=sleep_recorder)
    gateway.register_provider("flaky", mock_config(retry_attempts=6), client=FailingProvider())

    with pytest.raises(ExecutionExhaustedError):
        await gateway.execute_with_context("flaky", "prompt", "system", context)

    assert sleep_recorder.delays == [1.0, 2.0, 4.0, 8.0, 10.0, 10.0]


@pytest.mark.asyncio
async def test_success_after_retry_records_path(context, sleep_recorder):
    provider = ScriptedProvider([failed("busy"), ok("Second try worked because patience matters.")])
    gateway = ResilientExecutor(sleep=sleep_recorder)
    gateway.register_provider("mock", mock_config(retry_attempts=2), client=provider)

    result = await gateway.execute_with_context("mock", "prompt", "system", context)

    assert result.success
    assert result.metadata.retry_count == 1
    assert result.metadata.execution_path == ["mock", "retry_1"]
    assert result.metadata.fallback_used is False


@pytest.mark.asyncio
async def test_empty_content_counts_as_failure(context, sleep_recorder):
    provider = ScriptedProvider([ok("   "), ok("Real content at last.")])
    gateway = ResilientExecutor(sleep=sleep_recorder)
    gateway.register_provider("mock", mock_config(retry_attempts=1), client=provider)

    result = await gateway.execute_with_context("mock", "prompt", "system", context)

    assert provider.calls == 2
    assert result.content == "Real content at last."


@pytest.mark.asyncio
async def test_fallback_path_order(context, sleep_recorder):
    print("\n🧪 Test: fallback escalation")
    primary = FailingProvider("primary down")
    backup = MockProvider(responder=lambda p, s: "Fallback answer with some depth.")
    config = ProviderConfig(
        kind=ProviderKind.OPENROUTER,
        model="remote-model",
        api_key="test-key",
        retry_attempts=1,
        fallback=mock_config(model="backup-model", retry_attempts=0),
    )
    gateway = ResilientExecutor(sleep=sleep_recorder)
    gateway.register_provider("remote", config, client=primary, fallback_client=backup)

    result = await gateway.execute_with_context("remote", "prompt", "system", context)

    assert result.metadata.fallback_used is True
    assert result.metadata.execution_path == ["remote", "retry_1", "fallback", "mock"]
    assert result.provider_used == "mock"
    assert result.model_used == "backup-model"
    assert primary.calls == 2
    assert backup.calls == 1
    print(f"✅ Path: {result.metadata.execution_path}")


@pytest.mark.asyncio
async def test_both_providers_exhausted(context, sleep_recorder):
    config = ProviderConfig(
        kind=ProviderKind.MOCK, model="a", retry_attempts=0,
        fallback=ProviderConfig(kind=ProviderKind.MOCK, model="b", retry_attempts=0),
    )
    gateway = ResilientExecutor(sleep=sleep_recorder)
    gateway.register_provider("pair", config, client=FailingProvider("first"), fallback_client=FailingProvider("second"))

    with pytest.raises(ExecutionExhaustedError) as excinfo:
        await gateway.execute_with_context("pair", "prompt", "system", context)

    assert excinfo.value.primary_error == "first"
    assert excinfo.value.fallback_error == "second"
    assert str(excinfo.value).startswith("Both primary and fallback providers failed")


@pytest.mark.asyncio
async def test_unknown_provider_raises(gateway, context):
    with pytest.raises(ProviderUnavailableError):
        await gateway.execute_with_context("nowhere", "prompt", "system", context)


@pytest.mark.asyncio
async def test_registration_failure_is_not_fatal(gateway, context, monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    usable = gateway.register_provider("remote", ProviderConfig(kind=ProviderKind.OPENROUTER, model="m"))

    assert usable is False
    assert gateway.is_registered("remote")
    assert "remote" not in gateway.available_providers()
    with pytest.raises(ProviderUnavailableError):
        await gateway.execute_with_context("remote", "prompt", "system", context)


@pytest.mark.asyncio
async def test_unusable_primary_escalates_to_fallback(gateway, context, monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    gateway.register_provider(
        "remote",
        ProviderConfig(kind=ProviderKind.OPENROUTER, model="m", fallback=mock_config()),
    )

    result = await gateway.execute_with_context("remote", "prompt", "system", context)

    assert result.metadata.fallback_used is True
    assert result.metadata.execution_path == ["remote", "fallback", "mock"]


@pytest.mark.asyncio
async def test_context_is_folded_into_prompt(sleep_recorder):
    provider = ScriptedProvider([ok("Noted.")])
    gateway = gateway_with(provider, sleep=sleep_recorder)
    context = GatewayContext(
        agent_id="kinesis",
        system_clock=7,
        phase="individual_thought",
        energy_level=0.5,
        previous_thoughts=["first", "second", "third"],
        question_history=["What is a promise?"],
    )

    await gateway.execute_with_context("mock", "Core prompt", "system", context)

    sent = provider.prompts[0]
    assert "kinesis" in sent
    assert "7" in sent
    assert "second / third" in sent
    assert "first /" not in sent
    assert sent.rstrip().endswith("Core prompt")


@pytest.mark.asyncio
async def test_attempt_timeout_is_a_failed_attempt(context, sleep_recorder):
    class SlowProvider(MockProvider):
        async def execute(self, prompt, system_prompt):
            await asyncio.sleep(1)
            return await super().execute(prompt, system_prompt)

    gateway = ResilientExecutor(sleep=sleep_recorder)
    gateway.register_provider(
        "slow", ProviderConfig(kind=ProviderKind.MOCK, model="m", timeout_ms=10, retry_attempts=0), client=SlowProvider()
    )

    with pytest.raises(ExecutionExhaustedError) as excinfo:
        await gateway.execute_with_context("slow", "prompt", "system", context)
    assert "timeout" in str(excinfo.value).lower() or "10ms" in str(excinfo.value)


@pytest.mark.asyncio
async def test_with_timeout_decorator():
    @with_timeout(10)
    async def slow():
        await asyncio.sleep(1)

    @with_timeout(1000)
    async def fast():
        return "done"

    assert await fast() == "done"
    with pytest.raises(ProviderTimeoutError):
        await slow()


@pytest.mark.asyncio
async def test_stats_and_probe(context):
    gateway = gateway_with(MockProvider())
    await gateway.execute_with_context("mock", "What is a promise?", "sys", context)

    probe = await gateway.test_provider("mock")
    missing = await gateway.test_provider("nowhere")
    stats = await gateway.get_stats()

    assert probe.success is True
    assert missing.success is False
    assert stats.successful_executions >= 1
    assert stats.provider_usage.get("mock", 0) >= 1
    assert 0.0 < stats.success_rate <= 1.0
    assert len(stats.quality_trends["coherence"]) >= 1


@pytest.mark.asyncio
async def test_clear_cache(context):
    provider = MockProvider()
    gateway = gateway_with(provider)
    await gateway.execute_with_context("mock", "What is a promise?", "sys", context)
    await gateway.clear_cache()
    await gateway.execute_with_context("mock", "What is a promise?", "sys", context)

    assert provider.calls == 2


@pytest.mark.asyncio
async def test_cached_entry_is_isolated_from_callers(context):
    print("\n🧪 Test: returned results never alias the cached entry")
    gateway = gateway_with(MockProvider())

    fresh = await gateway.execute_with_context("mock", "What is a promise?", "sys", context)
    fresh.metadata.execution_path.append("tampered")
    first_hit = await gateway.execute_with_context("mock", "What is a promise?", "sys", context)
    first_hit.metadata.execution_path.clear()
    second_hit = await gateway.execute_with_context("mock", "What is a promise?", "sys", context)

    assert first_hit.metadata.cache_hit is True
    assert second_hit.metadata.execution_path == ["mock"]
    print(f"✅ Cached path intact: {second_hit.metadata.execution_path}")


def test_from_settings_registers_mock_only_by_default():
    gateway = ResilientExecutor.from_settings(Settings())

    assert gateway.available_providers() == ["mock"]


def test_from_settings_with_remote_providers():
    settings = Settings(openrouter_api_key="test-key", ollama_base_url="http://localhost:11434")
    gateway = ResilientExecutor.from_settings(settings, sleep=SleepRecorder())

    assert set(gateway.available_providers()) == {"mock", "openrouter", "ollama"}
