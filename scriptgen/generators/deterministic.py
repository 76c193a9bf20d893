from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from scriptgen.core.metadata import GenerationOutcome
from scriptgen.core.scenario import ActionKind, ElementWithLocator, GenerationContext, TestStep

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

NO_STEPS_MESSAGE = "No scenario or steps defined"

SUPPORTED_FRAMEWORKS = ("Selenium Java", "Selenium C#")


def _literal(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\r", "\\r")
    return f'"{escaped}"'


def _pascal(name: str) -> str:
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)


@dataclass(frozen=True, slots=True)
class LanguageDialect:
    """Code fragments for one target language; `{el}` is the element accessor call."""

    template_prefix: str
    field_indent: str
    step_indent: str
    field: str
    accessor: str
    comment: str
    statements: dict[ActionKind, str]
    contains_check: dict[ActionKind, str]
    how_xpath: str
    how_css: str


JAVA = LanguageDialect(
    template_prefix="selenium_java",
    field_indent="    ",
    step_indent="        ",
    field='@FindBy({how} = {locator})\nprivate WebElement {name};\n',
    accessor="public WebElement get{pascal}() {{\n    return {name};\n}}\n",
    comment="// {text}",
    statements={
        ActionKind.CLICK: "{el}.click();",
        ActionKind.TYPE_TEXT: "{el}.clear();\n{el}.sendKeys({value});",
        ActionKind.SELECT: "new Select({el}).selectByVisibleText({value});",
        ActionKind.HOVER: "new Actions(driver).moveToElement({el}).perform();",
        ActionKind.NAVIGATE: "driver.get({value});",
        ActionKind.ASSERT_VISIBLE: "assertTrue({el}.isDisplayed());",
        ActionKind.ASSERT_TEXT: "assertEquals({expected}, {el}.getText());",
        ActionKind.ASSERT_ATTRIBUTE: "assertEquals({expected}, {el}.getAttribute({attribute}));",
        ActionKind.WAIT: "wait.until(ExpectedConditions.visibilityOf({el}));",
        ActionKind.UPLOAD: "{el}.sendKeys({value});",
        ActionKind.SCREENSHOT: "((TakesScreenshot) driver).getScreenshotAs(OutputType.FILE);",
    },
    contains_check={
        ActionKind.ASSERT_TEXT: "assertTrue({el}.getText().contains({expected}));",
        ActionKind.ASSERT_ATTRIBUTE: "assertTrue({el}.getAttribute({attribute}).contains({expected}));",
    },
    how_xpath="xpath",
    how_css="css",
)

CSHARP = LanguageDialect(
    template_prefix="selenium_csharp",
    field_indent="        ",
    step_indent="            ",
    field="[FindsBy(How = {how}, Using = {locator})]\nprivate IWebElement {name};\n",
    accessor="public IWebElement Get{pascal}()\n{{\n    return {name};\n}}\n",
    comment="// {text}",
    statements={
        ActionKind.CLICK: "{el}.Click();",
        ActionKind.TYPE_TEXT: "{el}.Clear();\n{el}.SendKeys({value});",
        ActionKind.SELECT: "new SelectElement({el}).SelectByText({value});",
        ActionKind.HOVER: "new Actions(driver).MoveToElement({el}).Perform();",
        ActionKind.NAVIGATE: "driver.Navigate().GoToUrl({value});",
        ActionKind.ASSERT_VISIBLE: "Assert.That({el}.Displayed, Is.True);",
        ActionKind.ASSERT_TEXT: "Assert.That({el}.Text, Is.EqualTo({expected}));",
        ActionKind.ASSERT_ATTRIBUTE: "Assert.That({el}.GetAttribute({attribute}), Is.EqualTo({expected}));",
        ActionKind.WAIT: "wait.Until(d => {el}.Displayed);",
        ActionKind.UPLOAD: "{el}.SendKeys({value});",
        ActionKind.SCREENSHOT: "((ITakesScreenshot)driver).GetScreenshot();",
    },
    contains_check={
        ActionKind.ASSERT_TEXT: "Assert.That({el}.Text, Does.Contain({expected}));",
        ActionKind.ASSERT_ATTRIBUTE: "Assert.That({el}.GetAttribute({attribute}), Does.Contain({expected}));",
    },
    how_xpath="How.XPath",
    how_css="How.CssSelector",
)

DIALECTS = {
    "Selenium Java": JAVA,
    "Selenium C#": CSHARP,
}

ELEMENT_FREE_ACTIONS = {ActionKind.NAVIGATE, ActionKind.SCREENSHOT}


class TemplateScriptGenerator:
    """Template-based page object and test class generation without a model."""

    def __init__(self, template_dir: str | Path | None = None) -> None:
        self.template_dir = Path(template_dir) if template_dir is not None else TEMPLATE_DIR

    def available_frameworks(self) -> list[str]:
        return list(SUPPORTED_FRAMEWORKS)

    def generate(self, context: GenerationContext) -> GenerationOutcome:
        if context.scenario is None or not context.scenario.steps:
            logger.warning("Deterministic generation skipped: %s", NO_STEPS_MESSAGE)
            return GenerationOutcome.failure(NO_STEPS_MESSAGE, framework=context.framework)

        dialect = DIALECTS.get(context.framework, JAVA)
        try:
            page_template = self._load(f"{dialect.template_prefix}_page.template")
            test_template = self._load(f"{dialect.template_prefix}_test.template")
        except OSError as exc:
            logger.error("Failed to load templates: %s", exc)
            return GenerationOutcome.failure(f"Template error: {exc}", framework=context.framework)

        shared = {
            "{{PACKAGE}}": context.package_name,
            "{{PAGE_OBJECT_CLASS}}": context.page_object_class_name,
            "{{TEST_CLASS}}": context.test_class_name,
        }
        page_object_code = _render(
            page_template,
            {
                **shared,
                "{{FIELDS}}": self._fields(dialect, context.elements),
                "{{ACCESSORS}}": self._accessors(dialect, context.elements),
            },
        )
        test_code = _render(
            test_template,
            {**shared, "{{STEPS}}": self._steps(dialect, context)},
        )
        logger.info("Script generated from templates for framework: %s", context.framework)
        return GenerationOutcome(
            framework=context.framework,
            page_object_code=page_object_code,
            test_code=test_code,
            success=True,
            source="deterministic",
        )

    def _load(self, name: str) -> str:
        return (self.template_dir / name).read_text(encoding="utf-8")

    @staticmethod
    def _fields(dialect: LanguageDialect, elements: list[ElementWithLocator]) -> str:
        blocks: list[str] = []
        for element in elements:
            how = dialect.how_xpath if element.locator_kind == "xpath" else dialect.how_css
            blocks.append(
                _indent(
                    dialect.field.format(how=how, locator=_literal(element.locator), name=element.variable_name),
                    dialect.field_indent,
                )
            )
        return "\n".join(blocks)

    @staticmethod
    def _accessors(dialect: LanguageDialect, elements: list[ElementWithLocator]) -> str:
        blocks = [
            _indent(
                dialect.accessor.format(pascal=_pascal(element.variable_name), name=element.variable_name),
                dialect.field_indent,
            )
            for element in elements
        ]
        return "\n".join(blocks).rstrip("\n")

    def _steps(self, dialect: LanguageDialect, context: GenerationContext) -> str:
        lines: list[str] = []
        for step in context.scenario.ordered_steps():
            lines.append(dialect.comment.format(text=step.describe().replace("\n", " ")))
            statement = self._statement(dialect, context, step)
            if statement:
                lines.extend(statement.splitlines())
        return "\n".join(f"{dialect.step_indent}{line}" for line in lines)

    @staticmethod
    def _statement(dialect: LanguageDialect, context: GenerationContext, step: TestStep) -> str | None:
        variable = context.variable_for(step.target_locator) if step.target_locator else None
        if variable is None and step.action not in ELEMENT_FREE_ACTIONS:
            return None
        accessor_prefix = "get" if dialect is JAVA else "Get"
        element = f"page.{accessor_prefix}{_pascal(variable)}()" if variable else ""
        assertion = step.assertion
        expected = assertion.expected_value if assertion else step.input_value
        attribute = (assertion.attribute_name if assertion else None) or "value"
        template = dialect.statements[step.action]
        if assertion and assertion.kind == "contains" and step.action in dialect.contains_check:
            template = dialect.contains_check[step.action]
        return template.format(
            el=element,
            value=_literal(step.input_value),
            expected=_literal(expected),
            attribute=_literal(attribute),
        )


def _indent(text: str, prefix: str) -> str:
    return "\n".join(f"{prefix}{line}" if line else line for line in text.splitlines()) + "\n"


def _render(template: str, values: dict[str, str]) -> str:
    for placeholder, value in values.items():
        template = template.replace(placeholder, value)
    return template
