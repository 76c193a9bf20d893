from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol

from scriptgen.core.elements import ElementDescriptor, LocatorDefinition, LocatorKind, TypedLocator
from scriptgen.core.exceptions import DomQueryError
from scriptgen.core.metadata import UniquenessReport

logger = logging.getLogger(__name__)


class DomQueryExecutor(Protocol):
    def count_matches(self, escaped_selector: str) -> int:
        """Returns the number of live matches, or a negative value when the query fails."""


def escape_for_query(locator: str) -> str:
    return locator.replace("'", "\\'").replace('"', '\\"')


def _id_locator(element: ElementDescriptor) -> str:
    value = (element.id or "").strip()
    return f"#{value}" if value else ""


def _name_locator(element: ElementDescriptor) -> str:
    value = (element.name or "").strip()
    return f"[name='{value}']" if value else ""


def _attribute_locator(attribute: str) -> Callable[[ElementDescriptor], str]:
    def build(element: ElementDescriptor) -> str:
        value = element.attribute(attribute)
        return f"[{attribute}='{value}']" if value else ""

    return build


def _css_locator(element: ElementDescriptor) -> str:
    return element.css_selector.strip()


def _xpath_locator(element: ElementDescriptor) -> str:
    return element.xpath.strip()


def _class_locator(element: ElementDescriptor) -> str:
    classes = element.distinct_classes()
    if not classes:
        return ""
    return f"{element.tag_name.strip().lower()}.{'.'.join(classes)}"


# Ordered by priority; the first non-empty rule becomes the primary locator.
PRIMARY_RULES: tuple[tuple[LocatorKind, Callable[[ElementDescriptor], str]], ...] = (
    ("id", _id_locator),
    ("name", _name_locator),
    ("data-qa", _attribute_locator("data-qa")),
    ("data-testid", _attribute_locator("data-testid")),
    ("css", _css_locator),
    ("xpath", _xpath_locator),
)

# Alternatives also offer the tag.class compound, which never becomes primary.
ALTERNATIVE_RULES = PRIMARY_RULES + (("css", _class_locator),)


class LocatorResolver:
    """Turns an element descriptor into a prioritized locator definition."""

    def __init__(self, dom_query: DomQueryExecutor | None = None) -> None:
        self.dom_query = dom_query

    def resolve(
        self,
        element: ElementDescriptor,
        cancel_event: threading.Event | None = None,
    ) -> LocatorDefinition:
        logger.info("Resolving locator for <%s>", element.tag_name or "?")
        locator = LocatorDefinition()
        for kind, rule in PRIMARY_RULES:
            value = rule(element)
            if value:
                locator.primary_locator = value
                locator.locator_kind = kind
                break

        typed = [item for item in self.derive_alternatives(element) if item.value != locator.primary_locator]
        locator.typed_alternatives = typed
        locator.alternatives = [item.value for item in typed]

        if not locator.primary_locator:
            logger.warning("No identifying attributes found for <%s>", element.tag_name or "?")
        else:
            logger.info("Primary locator is %s: %s", locator.locator_kind, locator.primary_locator)
            if self.dom_query is not None:
                report = self.check_uniqueness(locator.primary_locator, cancel_event)
                if report.is_unique:
                    logger.info("Primary locator is unique: %s", locator.primary_locator)
                else:
                    logger.warning(
                        "Primary locator is not unique: %s (matches=%s, error=%s)",
                        locator.primary_locator,
                        report.match_count,
                        report.error,
                    )
        logger.info("Generated %d alternative locators", len(locator.alternatives))
        return locator

    def derive_alternatives(self, element: ElementDescriptor) -> list[TypedLocator]:
        alternatives: list[TypedLocator] = []
        seen: set[str] = set()
        for kind, rule in ALTERNATIVE_RULES:
            value = rule(element)
            if value and value not in seen:
                seen.add(value)
                alternatives.append(TypedLocator(kind=kind, value=value))
        return alternatives

    def check_uniqueness(
        self,
        locator: str,
        cancel_event: threading.Event | None = None,
    ) -> UniquenessReport:
        if self.dom_query is None:
            return UniquenessReport(locator=locator, match_count=-1, error="No DOM query executor configured")
        if cancel_event is not None and cancel_event.is_set():
            return UniquenessReport(locator=locator, match_count=-1, error="Uniqueness probe cancelled")
        try:
            count = self.dom_query.count_matches(escape_for_query(locator))
        except DomQueryError as exc:
            logger.error("Locator uniqueness probe failed for %s: %s", locator, exc)
            return UniquenessReport(locator=locator, match_count=-1, error=str(exc))
        if count < 0:
            logger.warning("Locator query raised inside the page for %s", locator)
            return UniquenessReport(locator=locator, match_count=count, error="Query execution error")
        logger.info("Locator %s matched %d element(s)", locator, count)
        return UniquenessReport(locator=locator, match_count=count)

    def is_unique(self, locator: str, cancel_event: threading.Event | None = None) -> bool:
        return self.check_uniqueness(locator, cancel_event).is_unique
