"""
Video page screenshot via headless Chrome (selenium).
"""

import logging
import time
from pathlib import Path

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from ytanalysis.core.error_codes import JobError
from ytanalysis.core.constants import (
    ErrorCode, SCREENSHOT_WINDOW_SIZE, SCREENSHOT_PAGE_LOAD_TIMEOUT_SEC,
    SCREENSHOT_VIDEO_WAIT_SEC, SCREENSHOT_SETTLE_SEC, USER_AGENT,
)

logger = logging.getLogger(__name__)


def _chrome_options() -> ChromeOptions:
    options = ChromeOptions()
    options.add_argument("--headless=new")
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-setuid-sandbox")
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--disable-accelerated-2d-canvas")
    options.add_argument("--no-first-run")
    options.add_argument("--no-zygote")
    options.add_argument("--disable-gpu")
    options.add_argument(f"--window-size={SCREENSHOT_WINDOW_SIZE[0]},{SCREENSHOT_WINDOW_SIZE[1]}")
    options.add_argument(f"--user-agent={USER_AGENT}")
    return options


def capture_screenshot(url: str, output_path: Path,
                       settle_sec: float = SCREENSHOT_SETTLE_SEC) -> Path:
    """
    Load the video page, wait for the <video> element, and save a PNG
    of the visible viewport. Returns the screenshot path.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    driver = None
    try:
        driver = webdriver.Chrome(options=_chrome_options())
        driver.set_page_load_timeout(SCREENSHOT_PAGE_LOAD_TIMEOUT_SEC)
        driver.get(url)

        WebDriverWait(driver, SCREENSHOT_VIDEO_WAIT_SEC).until(
            EC.presence_of_element_located((By.TAG_NAME, "video"))
        )
        # let the player paint its first frame
        time.sleep(settle_sec)

        if not driver.save_screenshot(str(output_path)):
            raise JobError(ErrorCode.SCREENSHOT_FAILED,
                           "Failed to take screenshot: browser did not write the image")
    except JobError:
        raise
    except TimeoutException:
        raise JobError(ErrorCode.SCREENSHOT_FAILED,
                       "Failed to take screenshot: timed out waiting for the video player")
    except WebDriverException as e:
        raise JobError(ErrorCode.SCREENSHOT_FAILED,
                       f"Failed to take screenshot: {e.msg or type(e).__name__}")
    finally:
        if driver is not None:
            try:
                driver.quit()
            except WebDriverException as e:
                logger.warning("Failed to close browser: %s", e)

    logger.info("Screenshot saved: %s", output_path)
    return output_path
