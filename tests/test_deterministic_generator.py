from __future__ import annotations

from scriptgen.core.scenario import (
    ActionKind,
    AssertionRule,
    GenerationContext,
    TestScenario,
    TestStep,
    build_generation_context,
)
from scriptgen.core.validator import CodeValidator
from scriptgen.generators.deterministic import NO_STEPS_MESSAGE, TemplateScriptGenerator


def test_java_output_passes_validation(login_context):
    outcome = TemplateScriptGenerator().generate(login_context)
    assert outcome.success
    assert outcome.source == "deterministic"
    result = CodeValidator().validate(outcome.page_object_code, outcome.test_code, "LoginPage", "LoginTest")
    assert result.is_valid, result.failures


def test_java_output_renders_fields_and_steps(login_context):
    outcome = TemplateScriptGenerator().generate(login_context)
    assert "package com.example.automation;" in outcome.page_object_code
    assert '@FindBy(css = "#username")' in outcome.page_object_code
    assert "private WebElement input_1;" in outcome.page_object_code
    assert "public WebElement getButton2()" in outcome.page_object_code
    assert 'driver.get("https://example.com/login");' in outcome.test_code
    assert 'page.getInput1().sendKeys("alice");' in outcome.test_code
    assert "page.getButton2().click();" in outcome.test_code
    assert "// Click on button (#submit)" in outcome.test_code
    assert "{{" not in outcome.page_object_code + outcome.test_code


def test_csharp_output_passes_validation(login_context):
    context = login_context.model_copy(update={"framework": "Selenium C#", "package_name": "Acme.Tests"})
    outcome = TemplateScriptGenerator().generate(context)
    assert outcome.framework == "Selenium C#"
    assert "namespace Acme.Tests" in outcome.page_object_code
    assert '[FindsBy(How = How.CssSelector, Using = "#username")]' in outcome.page_object_code
    assert "page.GetButton2().Click();" in outcome.test_code
    assert 'driver.Navigate().GoToUrl("https://example.com/login");' in outcome.test_code
    result = CodeValidator().validate(outcome.page_object_code, outcome.test_code, "LoginPage", "LoginTest")
    assert result.is_valid, result.failures


def test_unknown_framework_renders_java_but_reports_requested_name(login_context):
    context = login_context.model_copy(update={"framework": "Playwright TypeScript"})
    outcome = TemplateScriptGenerator().generate(context)
    assert outcome.framework == "Playwright TypeScript"
    assert "import org.junit.Test;" in outcome.test_code


def test_scenario_without_steps_fails():
    outcome = TemplateScriptGenerator().generate(GenerationContext(scenario=TestScenario()))
    assert not outcome.success
    assert outcome.error_message == NO_STEPS_MESSAGE
    assert not TemplateScriptGenerator().generate(GenerationContext()).success


def test_xpath_locators_and_assertions_are_rendered():
    scenario = TestScenario()
    scenario.add_step(
        TestStep(
            action=ActionKind.ASSERT_TEXT,
            element_type="h1",
            element_selector="//h1[@class=\"title\"]",
            assertion=AssertionRule(kind="contains", expected_value="Welcome"),
        )
    )
    scenario.add_step(
        TestStep(
            action=ActionKind.ASSERT_ATTRIBUTE,
            element_type="a",
            element_selector="a.home",
            assertion=AssertionRule(expected_value="/home", attribute_name="href"),
        )
    )
    outcome = TemplateScriptGenerator().generate(build_generation_context(scenario))
    assert '@FindBy(xpath = "//h1[@class=\\"title\\"]")' in outcome.page_object_code
    assert 'assertTrue(page.getH11().getText().contains("Welcome"));' in outcome.test_code
    assert 'assertEquals("/home", page.getA2().getAttribute("href"));' in outcome.test_code


def test_steps_without_known_element_keep_only_the_comment():
    scenario = TestScenario()
    scenario.add_step(TestStep(action=ActionKind.CLICK))
    outcome = TemplateScriptGenerator().generate(build_generation_context(scenario))
    assert "// Click on element" in outcome.test_code
    assert ".click();" not in outcome.test_code


def test_available_frameworks():
    assert TemplateScriptGenerator().available_frameworks() == ["Selenium Java", "Selenium C#"]
