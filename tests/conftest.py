from __future__ import annotations

import logging
from collections.abc import Callable

import pytest
from selenium.common.exceptions import WebDriverException

from scriptgen.config.schema import AISettings
from scriptgen.core.exceptions import ProviderError
from scriptgen.core.metadata import Completion, GenerationOutcome
from scriptgen.core.scenario import ActionKind, GenerationContext, TestScenario, TestStep, build_generation_context

VALID_PAGE_OBJECT = """package com.example.automation;

import org.openqa.selenium.WebDriver;
import org.openqa.selenium.WebElement;
import org.openqa.selenium.support.FindBy;
import org.openqa.selenium.support.PageFactory;

public class LoginPage {
    private WebDriver driver;

    @FindBy(css = "#username")
    private WebElement input_1;

    public LoginPage(WebDriver driver) {
        this.driver = driver;
        PageFactory.initElements(driver, this);
    }
}"""

VALID_TEST_CLASS = """package com.example.automation;

import org.junit.After;
import org.junit.Before;
import org.junit.Test;
import org.openqa.selenium.WebDriver;
import org.openqa.selenium.chrome.ChromeDriver;

public class LoginTest {
    private WebDriver driver;
    private LoginPage page;

    @Before
    public void setUp() {
        driver = new ChromeDriver();
        page = new LoginPage(driver);
    }

    @After
    public void tearDown() {
        driver.quit();
    }

    @Test
    public void testLogin() {
        driver.get("https://example.com/login");
    }
}"""


def fenced(*blocks: str, language: str = "java") -> str:
    return "Here you go:\n\n" + "\n\n".join(f"```{language}\n{block}\n```" for block in blocks)


class ScriptedTextClient:
    """Replays queued responses; an exception in the queue is raised instead of returned."""

    provider_name = "scripted"

    def __init__(self, responses=(), healthy: bool | Exception = True) -> None:
        self.responses = list(responses)
        self.healthy = healthy
        self.prompts: list[str] = []
        self.health_checks = 0

    def generate(self, prompt, cancel_event=None):
        self.prompts.append(prompt)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return Completion(content=response, total_tokens_used=42)

    def health_check(self) -> bool:
        self.health_checks += 1
        if isinstance(self.healthy, Exception):
            raise self.healthy
        return self.healthy


class RecordingDeterministicGenerator:
    def __init__(self) -> None:
        self.contexts: list[GenerationContext] = []

    def generate(self, context: GenerationContext) -> GenerationOutcome:
        self.contexts.append(context)
        return GenerationOutcome(
            framework=context.framework,
            page_object_code="// template page",
            test_code="// template test",
            success=True,
            source="deterministic",
        )


class RecordingPromptBuilder:
    """Wraps a real builder and records every repair failure list it receives."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.generation_prompts = 0
        self.repair_failures: list[list[str]] = []

    def build_generation_prompt(self, context):
        self.generation_prompts += 1
        return self.inner.build_generation_prompt(context)

    def build_repair_prompt(self, context, failures):
        self.repair_failures.append(list(failures))
        return self.inner.build_repair_prompt(context, failures)


class ScriptedDomQuery:
    def __init__(self, result: int | Exception = 1) -> None:
        self.result = result
        self.queries: list[str] = []

    def count_matches(self, escaped_selector: str) -> int:
        self.queries.append(escaped_selector)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeDriver:
    """Minimal stand-in for a Selenium WebDriver."""

    def __init__(self, script_result=None, elements=None, error: WebDriverException | None = None) -> None:
        self.script_result = script_result
        self.elements = list(elements or [])
        self.error = error
        self.scripts: list[tuple[str, tuple]] = []
        self.script_timeout = None
        self.find_calls: list[tuple[str, str]] = []

    def set_script_timeout(self, seconds) -> None:
        self.script_timeout = seconds

    def execute_script(self, script, *args):
        self.scripts.append((script, args))
        if self.error is not None:
            raise self.error
        return self.script_result

    def find_elements(self, by, value):
        self.find_calls.append((by, value))
        return list(self.elements)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture()
def login_scenario() -> TestScenario:
    scenario = TestScenario(name="Login")
    scenario.add_step(TestStep(action=ActionKind.NAVIGATE, input_value="https://example.com/login"))
    scenario.add_step(
        TestStep(action=ActionKind.TYPE_TEXT, element_type="input", element_selector="#username", input_value="alice")
    )
    scenario.add_step(TestStep(action=ActionKind.CLICK, element_type="button", element_selector="#submit"))
    return scenario


@pytest.fixture()
def login_context(login_scenario) -> GenerationContext:
    return build_generation_context(
        login_scenario,
        page_object_class_name="LoginPage",
        test_class_name="LoginTest",
    )


@pytest.fixture()
def ai_settings() -> AISettings:
    return AISettings(provider="ollama", max_retries=3)


@pytest.fixture()
def valid_response() -> str:
    return fenced(VALID_PAGE_OBJECT, VALID_TEST_CLASS)


@pytest.fixture()
def scripted_client() -> Callable[..., ScriptedTextClient]:
    return ScriptedTextClient


@pytest.fixture()
def deterministic_generator() -> RecordingDeterministicGenerator:
    return RecordingDeterministicGenerator()


@pytest.fixture()
def recording_prompt_builder() -> Callable[..., RecordingPromptBuilder]:
    return RecordingPromptBuilder


@pytest.fixture()
def scripted_dom_query() -> Callable[..., ScriptedDomQuery]:
    return ScriptedDomQuery


@pytest.fixture()
def fake_driver() -> Callable[..., FakeDriver]:
    return FakeDriver


@pytest.fixture()
def provider_error() -> ProviderError:
    return ProviderError("connection refused")


@pytest.fixture()
def valid_page_object() -> str:
    return VALID_PAGE_OBJECT


@pytest.fixture()
def valid_test_class() -> str:
    return VALID_TEST_CLASS


@pytest.fixture()
def fence() -> Callable[..., str]:
    return fenced
