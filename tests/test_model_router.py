from __future__ import annotations

import asyncio

import httpx
import pytest

from reme.routing import (
    ModelConfig,
    ModelRouter,
    ModelRouterError,
    ModelTimeoutError,
    NoModelAvailableError,
    OllamaProvider,
    ProviderUnavailableError,
    RoutingTask,
    UnsupportedProviderError,
)

from conftest import ScriptedProvider


def make_router(**providers) -> ModelRouter:
    return ModelRouter(providers, timeout=1.0)


def test_low_complexity_prefers_local_model() -> None:
    local = ScriptedProvider()
    cloud = ScriptedProvider()
    router = make_router(ollama=local, anthropic=cloud, openai=cloud)

    model = router.route_request(RoutingTask(type="code", complexity="low", tokens=500))

    assert model.local
    assert model.key == "codegemma"


def test_low_complexity_can_opt_out_of_local() -> None:
    provider = ScriptedProvider()
    router = make_router(ollama=provider, anthropic=provider)

    model = router.route_request(RoutingTask(type="code", complexity="low", prefer_local=False))

    assert model.key == "claude-3-7-sonnet"


def test_high_complexity_uses_primary_model() -> None:
    provider = ScriptedProvider()
    router = make_router(ollama=provider, anthropic=provider, openai=provider)

    model = router.route_request(RoutingTask(type="code", complexity="high", tokens=4000))

    assert model.key == "claude-sonnet-4"


def test_high_urgency_without_primary_picks_most_capable_cloud_model() -> None:
    provider = ScriptedProvider()
    router = make_router(openai=provider)

    model = router.route_request(RoutingTask(type="analysis", urgency="high"))

    assert model.key == "gpt-4o"


def test_medium_task_uses_default_then_first_cloud_model() -> None:
    provider = ScriptedProvider()

    assert make_router(anthropic=provider).route_request(RoutingTask(type="code")).key == "claude-3-7-sonnet"
    assert make_router(openai=provider).route_request(RoutingTask(type="code")).key == "gpt-4o"


def test_only_local_candidates_fall_back_to_first_local() -> None:
    router = make_router(ollama=ScriptedProvider())

    model = router.route_request(RoutingTask(type="reasoning", complexity="high"))

    assert model.key == "qwen2.5-coder"


def test_token_requirement_filters_models() -> None:
    router = make_router(ollama=ScriptedProvider())

    model = router.route_request(RoutingTask(type="code", complexity="low", tokens=20000))

    assert model.key == "qwen2.5-coder"


def test_no_candidate_raises() -> None:
    router = make_router()

    with pytest.raises(NoModelAvailableError):
        router.route_request(RoutingTask(type="code"))


def test_local_failure_retries_once_against_fallback() -> None:
    local = ScriptedProvider([RuntimeError("connection refused")])
    cloud = ScriptedProvider(["cloud answer"])
    router = make_router(ollama=local, openai=cloud)

    completion = asyncio.run(
        router.generate_completion(router.get_model("codegemma"), [{"role": "user", "content": "hi"}])
    )

    assert completion.content == "cloud answer"
    assert completion.model == "gpt-4o-mini"
    assert len(local.calls) == 1
    assert len(cloud.calls) == 1


def test_fallback_failure_surfaces_error() -> None:
    local = ScriptedProvider([RuntimeError("down")])
    cloud = ScriptedProvider([RuntimeError("also down")])
    router = make_router(ollama=local, openai=cloud)

    with pytest.raises(ModelRouterError):
        asyncio.run(router.generate_completion(router.get_model("llama3.2"), []))

    assert len(local.calls) == 1
    assert len(cloud.calls) == 1


def test_cloud_failure_does_not_retry() -> None:
    cloud = ScriptedProvider([RuntimeError("rate limited")])
    router = make_router(anthropic=cloud, openai=cloud)

    with pytest.raises(ModelRouterError, match="rate limited"):
        asyncio.run(router.generate_completion(router.get_model("claude-sonnet-4"), []))

    assert len(cloud.calls) == 1


def test_unknown_provider_is_rejected() -> None:
    router = ModelRouter(
        {},
        models=[ModelConfig(key="mystery", name="m", provider="acme", max_tokens=100, capabilities=["code"])],
    )

    with pytest.raises(UnsupportedProviderError):
        asyncio.run(router.generate_completion(router.get_model("mystery"), []))


def test_unconfigured_provider_is_reported() -> None:
    router = make_router()

    with pytest.raises(ProviderUnavailableError):
        asyncio.run(router.generate_completion(router.get_model("gpt-4o"), []))


def test_slow_provider_times_out() -> None:
    class SlowProvider(ScriptedProvider):
        async def complete(self, *args, **kwargs):
            await asyncio.sleep(1)
            return await super().complete(*args, **kwargs)

    router = ModelRouter({"anthropic": SlowProvider(["late"])}, timeout=0.01)

    with pytest.raises(ModelTimeoutError):
        asyncio.run(router.generate_completion(router.get_model("claude-sonnet-4"), []))


def test_max_tokens_capped_by_model_limit() -> None:
    provider = ScriptedProvider(["ok"])
    router = make_router(ollama=provider)

    asyncio.run(router.generate_completion(router.get_model("codegemma"), [], max_tokens=50000))

    assert provider.calls[0]["max_tokens"] == 8192
    assert provider.calls[0]["temperature"] == 0.7


def test_describe_marks_available_models() -> None:
    router = make_router(openai=ScriptedProvider())

    availability = {entry["key"]: entry["available"] for entry in router.describe()}

    assert availability["gpt-4o"] is True
    assert availability["claude-sonnet-4"] is False
    assert router.provider_status()["openai"] is True
    assert [model.key for model in router.available_models()][:2] == ["claude-sonnet-4", "claude-3-7-sonnet"]


def test_ollama_provider_posts_chat_request() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/api/tags":
            return httpx.Response(200, json={"models": [{"name": "codegemma:7b"}]})
        return httpx.Response(200, json={"message": {"role": "assistant", "content": "{\"ok\": true}"}})

    provider = OllamaProvider("http://ollama.test", transport=httpx.MockTransport(handler))
    router = make_router(ollama=provider)

    completion = asyncio.run(
        router.generate_completion(router.get_model("codegemma"), [{"role": "user", "content": "hi"}], json_mode=True)
    )
    models = asyncio.run(router.list_local_models())

    assert completion.content == '{"ok": true}'
    assert completion.cost == 0.0
    assert models == ["codegemma:7b"]
    assert seen[0].url.path == "/api/chat"
    assert b'"format":"json"' in seen[0].content.replace(b" ", b"")


def test_list_local_models_without_ollama_is_empty() -> None:
    assert asyncio.run(make_router().list_local_models()) == []
