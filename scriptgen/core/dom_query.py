from __future__ import annotations

from selenium.common.exceptions import TimeoutException, WebDriverException

from scriptgen.core.exceptions import DomQueryError

# The literal arrives already escaped for both quote styles.
COUNT_MATCHES_SCRIPT = r"""
return (function () {
  const selector = '__SELECTOR__';
  try {
    const trimmed = selector.trim();
    if (trimmed.startsWith("/") || trimmed.startsWith("(")) {
      const snapshot = document.evaluate(
        selector, document, null, XPathResult.ORDERED_NODE_SNAPSHOT_TYPE, null
      );
      return snapshot.snapshotLength;
    }
    return document.querySelectorAll(selector).length;
  } catch (e) {
    return -1;
  }
})();
"""


def build_count_script(escaped_selector: str) -> str:
    return COUNT_MATCHES_SCRIPT.replace("__SELECTOR__", escaped_selector)


class SeleniumDomQuery:
    """Counts live locator matches through a Selenium driver."""

    def __init__(self, driver, script_timeout_seconds: float = 5) -> None:
        self.driver = driver
        self.script_timeout_seconds = script_timeout_seconds

    def count_matches(self, escaped_selector: str) -> int:
        try:
            self.driver.set_script_timeout(self.script_timeout_seconds)
            result = self.driver.execute_script(build_count_script(escaped_selector))
        except TimeoutException as exc:
            raise DomQueryError(f"Locator query timed out after {self.script_timeout_seconds}s") from exc
        except WebDriverException as exc:
            raise DomQueryError(f"Locator query could not be executed: {exc.msg or exc}") from exc
        try:
            return int(result)
        except (TypeError, ValueError) as exc:
            raise DomQueryError(f"Locator query returned a non-numeric result: {result!r}") from exc
