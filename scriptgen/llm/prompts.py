from __future__ import annotations

import logging
from pathlib import Path

from scriptgen.core.scenario import ElementWithLocator, GenerationContext, TestScenario

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You generate browser automation test code.
Return only code in fenced blocks, exactly as the request specifies, with no explanation."""

TEMPLATE_DIR = Path(__file__).parent / "templates"

FRAMEWORK_TEMPLATES = {
    "Selenium Java": "selenium_java.txt",
    "Selenium C#": "selenium_csharp.txt",
}

FRAMEWORK_LANGUAGES = {
    "Selenium Java": "java",
    "Selenium C#": "csharp",
    "Playwright TypeScript": "typescript",
    "Playwright .NET": "csharp",
}

NO_ELEMENTS = "No elements defined"
NO_STEPS = "No specific steps defined - generate test methods that interact with the provided elements"
NO_STEP_DESCRIPTIONS = "Execute interactions with provided elements"


def fence_language(framework: str) -> str:
    return FRAMEWORK_LANGUAGES.get(framework, "java")


def build_elements_description(elements: list[ElementWithLocator]) -> str:
    if not elements:
        return NO_ELEMENTS
    lines: list[str] = []
    for index, element in enumerate(elements, start=1):
        lines.append(f"Element {index}:")
        lines.append(f"  - Type: {element.element_type}")
        lines.append(f"  - Locator: {element.locator}")
        lines.append(f"  - Locator kind: {element.locator_kind}")
        lines.append(f"  - Variable: {element.variable_name}")
    return "\n".join(lines)


def build_steps_description(scenario: TestScenario | None) -> str:
    if scenario is None or not scenario.steps:
        return NO_STEPS
    lines: list[str] = []
    for index, step in enumerate(scenario.ordered_steps(), start=1):
        description = step.describe()
        if description:
            lines.append(f"Step {index}: {description}")
    return "\n".join(lines) if lines else NO_STEP_DESCRIPTIONS


class PromptBuilder:
    """Renders generation and repair prompts from a generation context."""

    def __init__(self, template_dir: str | Path | None = None) -> None:
        self.template_dir = Path(template_dir) if template_dir is not None else TEMPLATE_DIR

    def build_generation_prompt(self, context: GenerationContext) -> str:
        template = self._load_template(context.framework)
        if template is None:
            logger.info("Using built-in generation prompt for %s", context.framework)
            return self._default_generation_prompt(context)
        prompt = (
            template.replace("{{ELEMENTS}}", build_elements_description(context.elements))
            .replace("{{STEPS}}", build_steps_description(context.scenario))
            .replace("{{PAGE_OBJECT_CLASS}}", context.page_object_class_name)
            .replace("{{TEST_CLASS}}", context.test_class_name)
            .replace("{{PACKAGE}}", context.package_name)
        )
        logger.info("Built generation prompt for %s", context.framework)
        return prompt

    def build_repair_prompt(self, context: GenerationContext, failures: list[str]) -> str:
        failure_text = "\n".join(f"- {failure}" for failure in failures)
        language = fence_language(context.framework)
        prompt = f"""The previously generated code had the following issues:

{failure_text}

Please regenerate the complete {context.framework} test code fixing all the above issues.
Return exactly two fenced code blocks (```{language} ... ```): first the Page Object class {context.page_object_class_name}, then the test class {context.test_class_name}.
Package/namespace: {context.package_name}

Elements:
{build_elements_description(context.elements)}

Test steps:
{build_steps_description(context.scenario)}

Make sure to:
- Fix all identified issues
- Maintain production quality
- Include all necessary imports
- Follow the framework's conventions

Generate the corrected code now:"""
        logger.info("Built repair prompt for %s with %d failure(s)", context.framework, len(failures))
        return prompt

    def _load_template(self, framework: str) -> str | None:
        template_name = FRAMEWORK_TEMPLATES.get(framework)
        if template_name is None:
            return None
        path = self.template_dir / template_name
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("Prompt template %s could not be loaded: %s", path, exc)
            return None

    def _default_generation_prompt(self, context: GenerationContext) -> str:
        language = fence_language(context.framework)
        return f"""You are an expert test automation engineer. Generate production-ready automation test code.

CRITICAL RULES:
1. Return ONLY code. No explanations, no commentary.
2. Generate exactly TWO code blocks:
   - First block: Page Object class {context.page_object_class_name} (```{language} ... ```)
   - Second block: Test class {context.test_class_name} (```{language} ... ```)
3. Use the Page Object Model pattern.
4. Use explicit waits. Never use fixed delays such as Thread.sleep.
5. Use the actual locator values from the element metadata.
6. Include all necessary imports.

Framework: {context.framework}
Language: {language}
Package/namespace: {context.package_name}

Elements to interact with:
{build_elements_description(context.elements)}

Test steps to automate:
{build_steps_description(context.scenario)}

Generate the complete, runnable code with proper code fences now:"""
