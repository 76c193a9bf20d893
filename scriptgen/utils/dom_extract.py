from __future__ import annotations

from typing import Any

from selenium.common.exceptions import WebDriverException

from scriptgen.core.elements import BoundingRect, ElementDescriptor
from scriptgen.core.exceptions import DomQueryError

DESCRIBE_ELEMENT_SCRIPT = r"""
const node = arguments[0];
if (!(node instanceof Element)) return null;

const cssPath = (element) => {
  if (element.id) return `#${CSS.escape(element.id)}`;
  const path = [];
  let current = element;
  while (current && current.parentElement) {
    let part = current.tagName.toLowerCase();
    if (current.id) {
      path.unshift(`${part}#${CSS.escape(current.id)}`);
      break;
    }
    let nth = 1;
    let sibling = current;
    while ((sibling = sibling.previousElementSibling)) {
      if (sibling.tagName === current.tagName) nth++;
    }
    if (nth > 1) part += `:nth-of-type(${nth})`;
    path.unshift(part);
    current = current.parentElement;
  }
  return path.join(" > ");
};

const xpathOf = (element) => {
  if (element.id) return `//*[@id="${element.id}"]`;
  const parts = [];
  let current = element;
  while (current && current.nodeType === Node.ELEMENT_NODE) {
    let index = 1;
    let sibling = current.previousElementSibling;
    while (sibling) {
      if (sibling.tagName === current.tagName) index++;
      sibling = sibling.previousElementSibling;
    }
    parts.unshift(`${current.tagName.toLowerCase()}[${index}]`);
    current = current.parentElement;
  }
  return "/" + parts.join("/");
};

const shadowHosts = [];
let root = node.getRootNode();
while (root && root.host) {
  shadowHosts.unshift(root.host.tagName.toLowerCase());
  root = root.host.getRootNode();
}

const rect = node.getBoundingClientRect();
return {
  tagName: node.tagName.toLowerCase(),
  id: node.id || null,
  name: node.getAttribute("name"),
  classList: Array.from(node.classList),
  attributes: Array.from(node.attributes).reduce((acc, attr) => {
    acc[attr.name] = attr.value;
    return acc;
  }, {}),
  innerText: (node.innerText || node.textContent || "").trim().slice(0, 200),
  cssSelector: cssPath(node),
  xpath: xpathOf(node),
  boundingRect: {top: rect.top, left: rect.left, width: rect.width, height: rect.height},
  framePath: [],
  shadowHostChain: shadowHosts,
};
"""


def describe_element(driver, selector: str, by: str = "css selector") -> ElementDescriptor:
    """Captures the picker payload for the first element matching `selector`."""

    try:
        matches = driver.find_elements(by, selector)
        if not matches:
            raise DomQueryError(f"No element matches {selector}")
        payload = driver.execute_script(DESCRIBE_ELEMENT_SCRIPT, matches[0])
    except WebDriverException as exc:
        raise DomQueryError(f"Element capture failed for {selector}: {exc.msg or exc}") from exc
    if not payload:
        raise DomQueryError(f"Element capture returned nothing for {selector}")
    return descriptor_from_payload(payload)


def descriptor_from_payload(payload: dict[str, Any]) -> ElementDescriptor:
    rect = payload.get("boundingRect") or {}
    return ElementDescriptor(
        tag_name=payload.get("tagName", ""),
        id=payload.get("id") or None,
        name=payload.get("name") or None,
        class_list=list(payload.get("classList") or []),
        attributes={str(key): str(value) for key, value in (payload.get("attributes") or {}).items()},
        inner_text=payload.get("innerText", "") or "",
        css_selector=payload.get("cssSelector", "") or "",
        xpath=payload.get("xpath", "") or "",
        bounding_rect=BoundingRect(
            top=rect.get("top", 0),
            left=rect.get("left", 0),
            width=rect.get("width", 0),
            height=rect.get("height", 0),
        ),
        frame_path=list(payload.get("framePath") or []),
        shadow_host_chain=list(payload.get("shadowHostChain") or []),
    )
