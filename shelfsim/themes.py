"""
Site themes: screenshot a website, and write the active ``theme.json``.

selenium is imported lazily inside ``screenshot_url`` so the web app starts
without a browser stack installed.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from shelfsim.errors import InvalidConfigurationError, ScreenshotError
from shelfsim.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_THEME = {
    "variant": "professional",
    "primary": "hsl(222.2 47.4% 11.2%)",
    "appearance": "light",
    "radius": 0.5,
}


def theme_name_from_url(url: str) -> str:
    """Hostname of *url*; raises if the URL has none."""
    hostname = urlparse(url).hostname
    if not hostname:
        raise InvalidConfigurationError(f"Not a valid website URL: {url}")
    return hostname


def screenshot_url(
    url: str,
    *,
    chromium_path: str,
    chromedriver_path: str,
    width: int = 800,
    height: int = 600,
    page_load_timeout: int = 45,
) -> bytes:
    """Render *url* in headless Chromium and return a PNG screenshot."""
    from selenium import webdriver
    from selenium.common.exceptions import WebDriverException
    from selenium.webdriver.chrome.options import Options
    from selenium.webdriver.chrome.service import Service

    opts = Options()
    opts.add_argument("--headless=new")
    opts.add_argument(f"--window-size={width},{height}")
    opts.add_argument("--disable-gpu")
    opts.add_argument("--no-sandbox")
    opts.add_argument("--disable-dev-shm-usage")
    opts.binary_location = chromium_path

    logger.info("Launching headless browser for %s", url)
    try:
        driver = webdriver.Chrome(service=Service(chromedriver_path), options=opts)
    except WebDriverException as exc:
        raise ScreenshotError(f"Could not start the browser: {exc.msg}") from exc
    try:
        driver.set_page_load_timeout(page_load_timeout)
        driver.get(url)
        png = driver.get_screenshot_as_png()
    except WebDriverException as exc:
        raise ScreenshotError(f"Could not capture {url}: {exc.msg}") from exc
    finally:
        driver.quit()
    logger.info("Screenshot of %s taken (%d bytes)", url, len(png))
    return png


def apply_theme(path: Path, primary: str, variant: str) -> dict[str, Any]:
    """Write the active theme file and return its content."""
    config = {
        "variant": variant,
        "primary": primary,
        "appearance": "light",
        "radius": 0.5,
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config, indent=2))
    logger.info("Applied theme %s (%s) to %s", primary, variant, path)
    return config


def load_theme(path: Path) -> dict[str, Any]:
    """The active theme, or the default one if none was applied yet."""
    if not path.exists():
        return dict(DEFAULT_THEME)
    with path.open() as f:
        return json.load(f)
