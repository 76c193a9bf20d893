from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from scriptgen.core.metadata import ValidationResult

logger = logging.getLogger(__name__)

CLASS_TOKEN = "<CLASS>"


@dataclass(frozen=True, slots=True)
class StructuralRule:
    """A required signal; `<CLASS>` in pattern or failure is replaced by the expected class name."""

    name: str
    pattern: str
    failure: str

    def check(self, code: str, class_name: str) -> str | None:
        pattern = self.pattern.replace(CLASS_TOKEN, re.escape(class_name))
        if re.search(pattern, code):
            return None
        return self.failure.replace(CLASS_TOKEN, class_name)


DRIVER_FIELD = r"\bI?WebDriver\s+driver\b"

PAGE_OBJECT_RULES: tuple[StructuralRule, ...] = (
    StructuralRule(
        "class_declaration",
        r"\bclass\s+<CLASS>\b",
        "Page Object class '<CLASS>' declaration not found",
    ),
    StructuralRule(
        "driver_field",
        DRIVER_FIELD,
        "Page Object missing WebDriver driver field",
    ),
    StructuralRule(
        "constructor",
        r"\bpublic\s+<CLASS>\s*\(",
        "Page Object missing constructor <CLASS>(WebDriver)",
    ),
    StructuralRule(
        "element_initialization",
        r"\bPageFactory\.(?:initElements|InitElements)\s*\(",
        "Page Object missing PageFactory.initElements call",
    ),
    StructuralRule(
        "selenium_import",
        r"\bimport\s+org\.openqa\.selenium\b|\busing\s+OpenQA\.Selenium\b",
        "Page Object missing Selenium imports",
    ),
)

TEST_CLASS_RULES: tuple[StructuralRule, ...] = (
    StructuralRule(
        "class_declaration",
        r"\bclass\s+<CLASS>\b",
        "Test class '<CLASS>' declaration not found",
    ),
    StructuralRule(
        "test_method",
        r"@Test\s+(?:public\s+)?void\s+\w+\s*\(|\[Test\]\s*public\s+(?:async\s+\w+\s+|void\s+)\w+\s*\(",
        "Test class missing @Test annotation or test method",
    ),
    StructuralRule(
        "setup_method",
        r"@Before(?:Each)?\s+(?:public\s+)?void\b|\[SetUp\]\s*public\s+void\b",
        "Test class missing @Before setup method",
    ),
    StructuralRule(
        "teardown_method",
        r"@After(?:Each)?\s+(?:public\s+)?void\b|\[TearDown\]\s*public\s+void\b",
        "Test class missing @After teardown method",
    ),
    StructuralRule(
        "driver_quit",
        r"\bdriver\.(?:quit|Quit|close|Close)\s*\(\s*\)",
        "Test class missing driver.quit() in teardown",
    ),
    StructuralRule(
        "test_framework_import",
        r"\bimport\s+(?:static\s+)?org\.junit\b|\busing\s+NUnit\b",
        "Test class missing JUnit imports",
    ),
    StructuralRule(
        "driver_field",
        DRIVER_FIELD,
        "Test class missing WebDriver driver field",
    ),
)


class CodeValidator:
    """Structural checks for generated page object and test classes."""

    def __init__(
        self,
        page_object_rules: tuple[StructuralRule, ...] = PAGE_OBJECT_RULES,
        test_class_rules: tuple[StructuralRule, ...] = TEST_CLASS_RULES,
    ) -> None:
        self.page_object_rules = page_object_rules
        self.test_class_rules = test_class_rules

    def validate(
        self,
        page_object_code: str,
        test_code: str,
        page_object_class_name: str,
        test_class_name: str,
    ) -> ValidationResult:
        result = ValidationResult()
        result.failures.extend(
            self._run(page_object_code, page_object_class_name, self.page_object_rules, "Page Object class")
        )
        result.failures.extend(self._run(test_code, test_class_name, self.test_class_rules, "Test class"))
        if result.is_valid:
            logger.info("Code validation passed")
        else:
            logger.warning("Code validation failed: %s", "; ".join(result.failures))
        return result

    @staticmethod
    def _run(code: str, class_name: str, rules: tuple[StructuralRule, ...], label: str) -> list[str]:
        if not code or not code.strip():
            return [f"{label} '{class_name}' is empty"]
        failures: list[str] = []
        for rule in rules:
            failure = rule.check(code, class_name)
            if failure is not None:
                failures.append(failure)
        return failures
