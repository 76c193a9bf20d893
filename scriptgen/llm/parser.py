from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Literal

from scriptgen.core.metadata import GenerationOutcome

logger = logging.getLogger(__name__)

BlockKind = Literal["page_object", "test"]

NO_CODE_BLOCKS = "No code blocks found"
MIN_BLOCK_LENGTH = 50

FENCED_BLOCK = re.compile(r"```[^\n`]*\n(.*?)```", re.DOTALL)
DECLARATION_LINE = re.compile(
    r"^(?:(?:public|private|protected|internal|export|default|abstract|final|static|sealed|partial|async)\s+)*"
    r"(?:class|interface|enum|record|def|function|module|namespace)\s+\w+"
    r"|^(?:describe|test)\s*\("
)
HEADER_LINE = re.compile(r"^(?:package|import|using)\s+\S|^from\s+\S+\s+import\s")
COMMENT_OR_LITERAL = re.compile(
    r"\"(?:\\.|[^\"\\\n])*\"|'(?:\\.|[^'\\\n])*'|//[^\n]*|/\*.*?\*/",
    re.DOTALL,
)


@dataclass(frozen=True, slots=True)
class StructuralSignal:
    name: str
    pattern: re.Pattern[str]

    def matches(self, code: str) -> bool:
        return self.pattern.search(code) is not None


def _signal(name: str, pattern: str, flags: int = 0) -> StructuralSignal:
    return StructuralSignal(name, re.compile(pattern, flags))


TEST_SIGNALS: tuple[StructuralSignal, ...] = (
    _signal("junit_annotation", r"@(?:Test|Before|After|BeforeEach|AfterEach|BeforeAll|AfterAll|BeforeClass|AfterClass)\b"),
    _signal("dotnet_test_attribute", r"\[(?:Test|TestMethod|Fact|SetUp|TearDown|TestFixture)\b"),
    _signal("js_test_call", r"(?<![\w.$])(?:test|it|describe)\s*\("),
    _signal("python_test_function", r"^\s*def\s+test_\w*\s*\(", re.MULTILINE),
)

PAGE_OBJECT_SIGNALS: tuple[StructuralSignal, ...] = (
    _signal(
        "driver_or_locator_field",
        r"\b(?:private|public|protected|readonly)\s+(?:readonly\s+)?(?:final\s+)?(?:static\s+)?"
        r"(?:WebDriver|IWebDriver|WebElement|IWebElement|By|IPage|ILocator|Page|Locator)\s+\w+",
    ),
    _signal("typed_locator_property", r"\b\w+\s*:\s*(?:Page|Locator)\s*[;=]"),
    _signal("find_by_annotation", r"@FindBy\s*\(|\[FindsBy\b"),
)


def extract_code_blocks(text: str) -> list[str]:
    blocks = [match.group(1).strip() for match in FENCED_BLOCK.finditer(text)]
    blocks = [block for block in blocks if block]
    if blocks:
        logger.debug("Extracted %d fenced code block(s)", len(blocks))
        return blocks
    logger.warning("No fenced code blocks found, attempting unfenced extraction")
    return _extract_unfenced_blocks(text)


def _extract_unfenced_blocks(text: str) -> list[str]:
    blocks: list[str] = []
    current: list[str] = []
    has_declaration = False
    blank_run = 0

    def flush() -> None:
        nonlocal current, has_declaration, blank_run
        candidate = "\n".join(current).strip()
        if len(candidate) >= MIN_BLOCK_LENGTH:
            blocks.append(candidate)
        current = []
        has_declaration = False
        blank_run = 0

    for line in text.splitlines():
        is_declaration = DECLARATION_LINE.match(line) is not None
        is_header = HEADER_LINE.match(line) is not None
        if current and has_declaration and (is_declaration or is_header):
            flush()
        if not current:
            if is_declaration or is_header:
                current = [line]
                has_declaration = is_declaration
            continue
        if not line.strip():
            blank_run += 1
            if blank_run >= 2:
                flush()
                continue
        else:
            blank_run = 0
        current.append(line)
        has_declaration = has_declaration or is_declaration
    if current:
        flush()
    logger.debug("Extracted %d unfenced code block(s)", len(blocks))
    return blocks


def strip_comments_and_literals(code: str) -> str:
    """Blank out comments and string contents so prose cannot look like structure."""

    def replace(match: re.Match[str]) -> str:
        token = match.group(0)
        if token.startswith(("//", "/*")):
            return " "
        return token[0] * 2

    return COMMENT_OR_LITERAL.sub(replace, code)


def classify_block(code: str, page_object_class_name: str, test_class_name: str) -> BlockKind | None:
    code = strip_comments_and_literals(code)
    if any(signal.matches(code) for signal in TEST_SIGNALS):
        return "test"
    if any(signal.matches(code) for signal in PAGE_OBJECT_SIGNALS):
        return "page_object"
    if test_class_name and re.search(rf"\bclass\s+{re.escape(test_class_name)}\b", code):
        return "test"
    if page_object_class_name and re.search(rf"\bclass\s+{re.escape(page_object_class_name)}\b", code):
        return "page_object"
    return None


def placeholder_page_object(class_name: str, framework: str = "", package_name: str = "com.example.automation") -> str:
    if framework.endswith("C#") or framework.endswith(".NET"):
        return f"""using OpenQA.Selenium;
using SeleniumExtras.PageObjects;

namespace {package_name}
{{
    public class {class_name}
    {{
        private IWebDriver driver;

        public {class_name}(IWebDriver driver)
        {{
            this.driver = driver;
            PageFactory.InitElements(driver, this);
        }}
    }}
}}
"""
    return f"""package {package_name};

import org.openqa.selenium.*;
import org.openqa.selenium.support.PageFactory;

public class {class_name} {{
    private WebDriver driver;

    public {class_name}(WebDriver driver) {{
        this.driver = driver;
        PageFactory.initElements(driver, this);
    }}

    public WebDriver getDriver() {{
        return driver;
    }}
}}
"""


class ResponseParser:
    """Extracts page object and test code from raw model output."""

    def parse(
        self,
        raw_text: str,
        page_object_class_name: str,
        test_class_name: str,
        framework: str = "",
        package_name: str = "com.example.automation",
    ) -> GenerationOutcome:
        blocks = extract_code_blocks(raw_text or "")
        if not blocks:
            logger.warning("Response contained no usable code")
            return GenerationOutcome.failure(NO_CODE_BLOCKS, framework=framework)

        kinds = [classify_block(block, page_object_class_name, test_class_name) for block in blocks]
        test_index = next((index for index, kind in enumerate(kinds) if kind == "test"), None)
        if test_index is None:
            test_index = max(range(len(blocks)), key=lambda index: len(blocks[index]))
            logger.info("No block carried a test signal, using the largest block as the test class")
        page_index = next(
            (index for index, kind in enumerate(kinds) if kind == "page_object" and index != test_index),
            None,
        )
        if page_index is None:
            logger.info("No page object block found, synthesizing %s", page_object_class_name)
            page_object_code = placeholder_page_object(page_object_class_name, framework, package_name)
        else:
            page_object_code = blocks[page_index]

        return GenerationOutcome(
            framework=framework,
            page_object_code=page_object_code,
            test_code=blocks[test_index],
            success=True,
            source="ai",
        )
