from __future__ import annotations

import logging

from selenium import webdriver
from selenium.webdriver import ChromeOptions, FirefoxOptions

from scriptgen.config.schema import BrowserSettings
from scriptgen.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _chrome_options(settings: BrowserSettings) -> ChromeOptions:
    options = ChromeOptions()
    if settings.headless:
        options.add_argument("--headless=new")
    options.add_argument(f"--window-size={settings.window_width},{settings.window_height}")
    return options


def _firefox_options(settings: BrowserSettings) -> FirefoxOptions:
    options = FirefoxOptions()
    if settings.headless:
        options.add_argument("-headless")
    options.add_argument(f"--width={settings.window_width}")
    options.add_argument(f"--height={settings.window_height}")
    return options


# browser name -> (webdriver class attribute, options builder)
DRIVERS = {
    "chrome": ("Chrome", _chrome_options),
    "firefox": ("Firefox", _firefox_options),
}


class BrowserSession:
    """Owns the single driver used to inspect live pages while capturing locators.

    Usable as a context manager; the driver is quit on exit even when the
    page inspection fails.
    """

    def __init__(self, settings: BrowserSettings) -> None:
        self.settings = settings
        self.driver = None

    def start(self, browser_name: str | None = None):
        name = (browser_name or self.settings.browser).lower()
        if name not in DRIVERS:
            raise ConfigurationError(f"Unsupported browser: {name}. Use one of: {', '.join(DRIVERS)}")
        driver_attr, build_options = DRIVERS[name]
        driver = getattr(webdriver, driver_attr)(options=build_options(self.settings))
        driver.set_page_load_timeout(self.settings.page_load_timeout_seconds)
        driver.set_script_timeout(self.settings.script_timeout_seconds)
        driver.implicitly_wait(0)
        logger.debug("Started %s session (headless=%s)", name, self.settings.headless)
        self.driver = driver
        return driver

    def close(self) -> None:
        if self.driver is None:
            return
        try:
            self.driver.quit()
        finally:
            self.driver = None

    def __enter__(self):
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.close()
