from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

LocatorKind = Literal["id", "name", "data-qa", "data-testid", "css", "xpath"]


def infer_locator_kind(locator: str) -> LocatorKind:
    stripped = locator.strip()
    if stripped.startswith("/") or stripped.startswith("("):
        return "xpath"
    if stripped.startswith("#"):
        return "id"
    if stripped.startswith("[name="):
        return "name"
    if stripped.startswith("[data-qa="):
        return "data-qa"
    if stripped.startswith("[data-testid="):
        return "data-testid"
    return "css"


class BoundingRect(BaseModel):
    top: float = 0
    left: float = 0
    width: float = 0
    height: float = 0


class ElementDescriptor(BaseModel):
    """Snapshot of one selected DOM element, as delivered by the browser host."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    tag_name: str = ""
    id: str | None = None
    name: str | None = None
    class_list: list[str] = Field(default_factory=list)
    attributes: dict[str, str] = Field(default_factory=dict)
    inner_text: str = ""
    css_selector: str = ""
    xpath: str = ""
    bounding_rect: BoundingRect = Field(default_factory=BoundingRect)
    frame_path: list[int] = Field(default_factory=list)
    shadow_host_chain: list[str] = Field(default_factory=list)

    def attribute(self, key: str) -> str:
        return (self.attributes.get(key) or "").strip()

    def distinct_classes(self) -> list[str]:
        seen: list[str] = []
        for item in self.class_list:
            name = item.strip()
            if name and name not in seen:
                seen.append(name)
        return seen


class TypedLocator(BaseModel):
    kind: LocatorKind
    value: str


class LocatorDefinition(BaseModel):
    primary_locator: str = ""
    locator_kind: LocatorKind | Literal[""] = ""
    alternatives: list[str] = Field(default_factory=list)
    typed_alternatives: list[TypedLocator] = Field(default_factory=list)
    is_user_modified: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_resolved(self) -> bool:
        return bool(self.primary_locator)

    def apply_user_edit(self, locator: str, kind: LocatorKind | None = None) -> None:
        """Replaces the primary locator with a user-chosen one."""

        new_primary = locator.strip()
        if not new_primary:
            raise ValueError("Edited locator must not be empty")
        previous = self.primary_locator
        previous_kind = self.locator_kind
        new_kind = kind or infer_locator_kind(new_primary)

        alternatives = [item for item in self.alternatives if item != new_primary]
        typed = [item for item in self.typed_alternatives if item.value != new_primary]
        if previous and previous != new_primary:
            alternatives.insert(0, previous)
            if previous_kind:
                typed.insert(0, TypedLocator(kind=previous_kind, value=previous))

        self.primary_locator = new_primary
        self.locator_kind = new_kind
        self.alternatives = alternatives
        self.typed_alternatives = typed
        self.is_user_modified = True
