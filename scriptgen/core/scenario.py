from __future__ import annotations

import re
import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

from scriptgen.core.elements import LocatorDefinition, LocatorKind, infer_locator_kind


def _now() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return str(uuid.uuid4())


class ActionKind(str, Enum):
    CLICK = "click"
    TYPE_TEXT = "type_text"
    SELECT = "select"
    HOVER = "hover"
    NAVIGATE = "navigate"
    ASSERT_VISIBLE = "assert_visible"
    ASSERT_TEXT = "assert_text"
    ASSERT_ATTRIBUTE = "assert_attribute"
    WAIT = "wait"
    UPLOAD = "upload"
    SCREENSHOT = "screenshot"


class AssertionRule(BaseModel):
    kind: str = "equals"
    expected_value: str = ""
    attribute_name: str | None = None


class TestStep(BaseModel):
    __test__ = False

    id: str = Field(default_factory=_new_id)
    action: ActionKind = ActionKind.CLICK
    element_type: str = ""
    element_selector: str = ""
    locator: LocatorDefinition | None = None
    input_value: str = ""
    assertion: AssertionRule | None = None
    order: int = 0

    @property
    def target_locator(self) -> str:
        if self.locator and self.locator.primary_locator:
            return self.locator.primary_locator
        return self.element_selector

    def describe(self) -> str:
        target = self._target_label()
        value = self.input_value
        if self.action is ActionKind.CLICK:
            return f"Click on {target}"
        if self.action is ActionKind.TYPE_TEXT:
            if not self.target_locator:
                return value
            return f"Type '{value}' into {target}"
        if self.action is ActionKind.SELECT:
            return f"Select '{value}' in {target}"
        if self.action is ActionKind.HOVER:
            return f"Hover over {target}"
        if self.action is ActionKind.NAVIGATE:
            return f"Navigate to {value}"
        if self.action is ActionKind.ASSERT_VISIBLE:
            return f"Assert {target} is visible"
        if self.action is ActionKind.ASSERT_TEXT:
            expected = self.assertion.expected_value if self.assertion else value
            return f"Assert text of {target} {self._assertion_kind()} '{expected}'"
        if self.action is ActionKind.ASSERT_ATTRIBUTE:
            attribute = (self.assertion.attribute_name if self.assertion else None) or "value"
            expected = self.assertion.expected_value if self.assertion else value
            return f"Assert attribute '{attribute}' of {target} {self._assertion_kind()} '{expected}'"
        if self.action is ActionKind.WAIT:
            if self.target_locator:
                return f"Wait for {target}"
            return f"Wait {value or 'until the page settles'}"
        if self.action is ActionKind.UPLOAD:
            return f"Upload '{value}' through {target}"
        return f"Take a screenshot{f' named {value}' if value else ''}"

    def _target_label(self) -> str:
        element_type = self.element_type or "element"
        locator = self.target_locator
        return f"{element_type} ({locator})" if locator else element_type

    def _assertion_kind(self) -> str:
        return (self.assertion.kind if self.assertion else "equals").replace("_", " ")


class TestScenario(BaseModel):
    """Ordered list of steps. `order` is one-based and kept contiguous."""

    __test__ = False

    id: str = Field(default_factory=_new_id)
    name: str = ""
    description: str = ""
    steps: list[TestStep] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def ordered_steps(self) -> list[TestStep]:
        return sorted(self.steps, key=lambda item: item.order)

    def add_step(self, step: TestStep) -> TestStep:
        return self.insert_step(len(self.steps), step)

    def insert_step(self, index: int, step: TestStep) -> TestStep:
        steps = self.ordered_steps()
        position = max(0, min(index, len(steps)))
        steps.insert(position, step)
        self._renumber(steps)
        return step

    def move_step(self, step_id: str, new_index: int) -> None:
        steps = self.ordered_steps()
        step = self._pop(steps, step_id)
        position = max(0, min(new_index, len(steps)))
        steps.insert(position, step)
        self._renumber(steps)

    def remove_step(self, step_id: str) -> TestStep:
        steps = self.ordered_steps()
        step = self._pop(steps, step_id)
        self._renumber(steps)
        return step

    def _renumber(self, steps: list[TestStep]) -> None:
        for position, item in enumerate(steps, start=1):
            item.order = position
        self.steps = steps
        self.updated_at = _now()

    @staticmethod
    def _pop(steps: list[TestStep], step_id: str) -> TestStep:
        for position, item in enumerate(steps):
            if item.id == step_id:
                return steps.pop(position)
        raise KeyError(f"Unknown step id: {step_id}")


class ElementWithLocator(BaseModel):
    element_id: str
    element_type: str
    locator: str
    locator_kind: LocatorKind = "css"
    variable_name: str


class GenerationContext(BaseModel):
    scenario: TestScenario | None = None
    framework: str = "Selenium Java"
    page_object_class_name: str = "ApplicationPage"
    test_class_name: str = "ApplicationTest"
    package_name: str = "com.example.automation"
    elements: list[ElementWithLocator] = Field(default_factory=list)

    def variable_for(self, locator: str) -> str | None:
        for element in self.elements:
            if element.locator == locator:
                return element.variable_name
        return None


def build_generation_context(
    scenario: TestScenario,
    framework: str = "Selenium Java",
    page_object_class_name: str = "ApplicationPage",
    test_class_name: str = "ApplicationTest",
    package_name: str = "com.example.automation",
) -> GenerationContext:
    elements: list[ElementWithLocator] = []
    seen: set[str] = set()
    for step in scenario.ordered_steps():
        locator = step.target_locator
        if not locator or locator in seen:
            continue
        seen.add(locator)
        count = len(elements) + 1
        if step.locator and step.locator.primary_locator and step.locator.locator_kind:
            kind = step.locator.locator_kind
        else:
            kind = infer_locator_kind(locator)
        element_type = step.element_type or "element"
        elements.append(
            ElementWithLocator(
                element_id=f"element{count}",
                element_type=element_type,
                locator=locator,
                locator_kind=kind,
                variable_name=f"{_identifier(element_type)}_{count}",
            )
        )
    return GenerationContext(
        scenario=scenario,
        framework=framework,
        page_object_class_name=page_object_class_name,
        test_class_name=test_class_name,
        package_name=package_name,
        elements=elements,
    )


def _identifier(text: str) -> str:
    normalized = re.sub(r"[^0-9a-zA-Z_]+", "_", text.strip().lower()).strip("_")
    if not normalized:
        return "element"
    if normalized[0].isdigit():
        return f"element_{normalized}"
    return normalized
