from __future__ import annotations

import http.client
import json
import threading

import pytest

from scriptgen.config.schema import AISettings
from scriptgen.core.coordinator import GenerationCoordinator
from scriptgen.core.exceptions import ConfigurationError, GenerationCancelled, ProviderError
from scriptgen.core.validator import CodeValidator
from scriptgen.llm import client as client_module
from scriptgen.llm.client import OpenAITextGenerationClient
from scriptgen.llm.parser import NO_CODE_BLOCKS, ResponseParser
from scriptgen.llm.prompts import PromptBuilder
from scriptgen.logging.audit import GenerationAuditLogger

INVALID_RESPONSE = "```java\npublic class LoginPage {\n    private String unused = \"nothing useful here\";\n}\n```"


@pytest.fixture()
def build(ai_settings, deterministic_generator, recording_prompt_builder):
    def factory(client, settings=None, audit_logger=None):
        prompt_builder = recording_prompt_builder(PromptBuilder())
        coordinator = GenerationCoordinator(
            settings=settings or ai_settings,
            llm_client=client,
            prompt_builder=prompt_builder,
            response_parser=ResponseParser(),
            code_validator=CodeValidator(),
            deterministic=deterministic_generator,
            audit_logger=audit_logger,
        )
        return coordinator, prompt_builder

    return factory


def test_disabled_ai_goes_straight_to_templates(build, scripted_client, ai_settings, deterministic_generator, login_context):
    client = scripted_client()
    coordinator, _ = build(client, settings=ai_settings.model_copy(update={"enabled": False}))
    outcome = coordinator.generate(login_context)
    assert outcome.source == "deterministic"
    assert len(deterministic_generator.contexts) == 1
    assert client.prompts == []
    assert client.health_checks == 0


def test_failed_health_check_falls_back_without_generating(build, scripted_client, deterministic_generator, login_context):
    client = scripted_client(healthy=False)
    coordinator, _ = build(client)
    outcome = coordinator.generate(login_context)
    assert outcome.success
    assert outcome.source == "deterministic"
    assert client.prompts == []
    assert len(deterministic_generator.contexts) == 1


def test_health_check_error_is_treated_as_unhealthy(build, scripted_client, deterministic_generator, login_context):
    client = scripted_client(healthy=ProviderError("dns failure"))
    coordinator, _ = build(client)
    outcome = coordinator.generate(login_context)
    assert outcome.source == "deterministic"
    assert client.prompts == []


def test_first_valid_attempt_stops_the_loop(build, scripted_client, valid_response, deterministic_generator, login_context):
    client = scripted_client([valid_response, valid_response])
    coordinator, prompt_builder = build(client)
    outcome = coordinator.generate(login_context)
    assert outcome.success
    assert outcome.source == "ai"
    assert outcome.framework == "Selenium Java"
    assert len(client.prompts) == 1
    assert prompt_builder.repair_failures == []
    assert deterministic_generator.contexts == []


def test_exhausted_retries_fall_back_after_two_repairs(build, scripted_client, deterministic_generator, login_context):
    client = scripted_client([INVALID_RESPONSE, INVALID_RESPONSE, INVALID_RESPONSE])
    coordinator, prompt_builder = build(client)
    outcome = coordinator.generate(login_context)
    assert len(client.prompts) == 3
    assert prompt_builder.generation_prompts == 1
    assert len(prompt_builder.repair_failures) == 2
    assert "Test class 'LoginTest' declaration not found" in prompt_builder.repair_failures[0]
    assert prompt_builder.repair_failures[0] == prompt_builder.repair_failures[1]
    assert len(deterministic_generator.contexts) == 1
    assert outcome.source == "deterministic"
    assert outcome.success


def test_repair_prompt_uses_only_latest_failures(build, scripted_client, provider_error, valid_response, login_context):
    client = scripted_client([provider_error, "no code at all", valid_response])
    coordinator, prompt_builder = build(client)
    outcome = coordinator.generate(login_context)
    assert outcome.source == "ai"
    assert prompt_builder.repair_failures == [
        ["Attempt 1 failed: connection refused"],
        [NO_CODE_BLOCKS],
    ]
    assert "- Attempt 1 failed: connection refused" in client.prompts[1]
    assert "connection refused" not in client.prompts[2]


def test_provider_errors_consume_retries(build, scripted_client, provider_error, deterministic_generator, login_context):
    client = scripted_client([provider_error, provider_error, provider_error])
    coordinator, _ = build(client)
    outcome = coordinator.generate(login_context)
    assert len(client.prompts) == 3
    assert outcome.source == "deterministic"
    assert len(deterministic_generator.contexts) == 1


def test_cancellation_before_start(build, scripted_client, deterministic_generator, login_context):
    client = scripted_client()
    cancel_event = threading.Event()
    cancel_event.set()
    coordinator, _ = build(client)
    outcome = coordinator.generate(login_context, cancel_event)
    assert outcome.cancelled
    assert not outcome.success
    assert outcome.error_message == "Generation cancelled by user"
    assert client.prompts == []
    assert client.health_checks == 0
    assert deterministic_generator.contexts == []


def test_cancellation_between_attempts(build, scripted_client, deterministic_generator, login_context):
    cancel_event = threading.Event()

    class CancellingClient(scripted_client):
        def generate(self, prompt, cancel_event=None):
            completion = super().generate(prompt, cancel_event)
            cancel_event.set()
            return completion

    client = CancellingClient([INVALID_RESPONSE, INVALID_RESPONSE])
    coordinator, _ = build(client)
    outcome = coordinator.generate(login_context, cancel_event)
    assert outcome.cancelled
    assert len(client.prompts) == 1
    assert deterministic_generator.contexts == []


def test_provider_raised_cancellation_is_terminal(build, scripted_client, deterministic_generator, login_context):
    client = scripted_client([GenerationCancelled("Generation cancelled by user")])
    coordinator, _ = build(client)
    outcome = coordinator.generate(login_context)
    assert outcome.cancelled
    assert deterministic_generator.contexts == []


def test_configuration_error_is_reported_without_fallback(build, scripted_client, deterministic_generator, login_context):
    client = scripted_client([ConfigurationError("OPENAI_API_KEY is required")])
    coordinator, _ = build(client)
    outcome = coordinator.generate(login_context)
    assert not outcome.success
    assert not outcome.cancelled
    assert outcome.error_message == "Configuration error: OPENAI_API_KEY is required"
    assert deterministic_generator.contexts == []


def test_unexpected_exception_becomes_error_outcome(build, scripted_client, deterministic_generator, login_context):
    client = scripted_client([KeyError("choices")])
    coordinator, _ = build(client)
    outcome = coordinator.generate(login_context)
    assert not outcome.success
    assert outcome.error_message.startswith("Generation error:")
    assert deterministic_generator.contexts == []


def test_every_attempt_is_audited(tmp_path, build, scripted_client, valid_response, login_context):
    audit_logger = GenerationAuditLogger(tmp_path)
    client = scripted_client([INVALID_RESPONSE, valid_response])
    coordinator, _ = build(client, audit_logger=audit_logger)
    coordinator.generate(login_context)
    attempts = audit_logger.read_attempts()
    assert [item["attempt"] for item in attempts] == [1, 2]
    assert [item["prompt_kind"] for item in attempts] == ["generation", "repair"]
    assert [item["success"] for item in attempts] == [False, True]
    assert attempts[0]["failures"]
    assert attempts[1]["tokens_used"] == 42
    assert attempts[0]["provider"] == "ollama"


class FakeHTTPResponse:
    def __init__(self, body: bytes) -> None:
        self.body = body

    def read(self) -> bytes:
        return self.body

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False


@pytest.fixture()
def http_backed(monkeypatch, build):
    """Coordinator over a real OpenAI-shaped client whose urlopen replays scripted results."""

    def factory(post_result, get_result=b"{}"):
        requests: list[str] = []

        def fake_urlopen(req, timeout):
            requests.append(req.get_method())
            result = get_result if req.get_method() == "GET" else post_result
            if isinstance(result, Exception):
                raise result
            return FakeHTTPResponse(result)

        monkeypatch.setattr(client_module.request, "urlopen", fake_urlopen)
        settings = AISettings(provider="openai", max_retries=2)
        client = OpenAITextGenerationClient(settings, api_key="sk-test")
        coordinator, prompt_builder = build(client, settings=settings)
        return coordinator, prompt_builder, requests

    return factory


def _chat_body(content: str, usage: dict | None = None) -> bytes:
    payload = {"choices": [{"message": {"content": content}, "finish_reason": "stop"}]}
    if usage is not None:
        payload["usage"] = usage
    return json.dumps(payload).encode("utf-8")


@pytest.mark.parametrize(
    "post_result",
    [
        http.client.IncompleteRead(b"partial"),
        http.client.RemoteDisconnected("Remote end closed connection"),
        b"\xff\xfe",
        b"[]",
    ],
    ids=["incomplete-read", "remote-disconnected", "undecodable-body", "json-array"],
)
def test_transport_failures_consume_retries_then_fall_back(
    http_backed, deterministic_generator, login_context, post_result
):
    coordinator, prompt_builder, requests = http_backed(post_result)
    outcome = coordinator.generate(login_context)
    assert outcome.success
    assert outcome.source == "deterministic"
    assert requests == ["GET", "POST", "POST"]
    assert len(deterministic_generator.contexts) == 1
    assert prompt_builder.repair_failures[0][0].startswith("Attempt 1 failed:")


def test_bad_status_line_in_health_check_falls_back(http_backed, deterministic_generator, login_context):
    coordinator, _, requests = http_backed(b"{}", get_result=http.client.BadStatusLine("HTTP/0.9 garbage"))
    outcome = coordinator.generate(login_context)
    assert outcome.source == "deterministic"
    assert requests == ["GET"]
    assert len(deterministic_generator.contexts) == 1


def test_null_usage_counts_do_not_break_generation(http_backed, valid_response, deterministic_generator, login_context):
    coordinator, _, _ = http_backed(_chat_body(valid_response, usage={"total_tokens": None}))
    outcome = coordinator.generate(login_context)
    assert outcome.success
    assert outcome.source == "ai"
    assert deterministic_generator.contexts == []
