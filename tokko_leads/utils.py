# -- coding: utf-8 --
"""
utils.py

Helpers for Playwright-based automation against the CRM: session checks, capped
network-idle waits, visibility checks, browser context profiles and logging.
"""

import logging
import sys
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

from playwright.async_api import (
    Browser,
    BrowserContext,
    Locator,
    Page,
    TimeoutError as PwTimeoutError,
)

from .errors import SessionClosedError

__all__ = [
    "DESKTOP_USER_AGENT", "NOT_CONNECTED_PATH", "SessionProfile", "new_context_with_profile",
    "check_session_active", "wait_for_network_idle", "checked_goto", "is_visible",
    "first_visible", "configure_logging",
]

LOG_FORMAT = '%(asctime)s | %(name)s | %(levelname)s | %(message)s'

NOT_CONNECTED_PATH = '/not_connected'

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

logger = logging.getLogger('TokkoLeads.Browser')


@dataclass
class SessionProfile:
    user_agent: str = DESKTOP_USER_AGENT
    viewport: Tuple[int, int] = (1920, 1080)
    locale: str = 'es-AR'


async def new_context_with_profile(browser: Browser, profile: Optional[SessionProfile] = None, **kwargs) -> BrowserContext:
    p = profile or SessionProfile()
    width, height = p.viewport
    context_args = {
        'user_agent': p.user_agent,
        'viewport': {'width': width, 'height': height},
        'locale': p.locale,
    }
    context_args.update(kwargs)
    return await browser.new_context(**context_args)


# ---------------------------------------------------------------------------
# Session guard
# ---------------------------------------------------------------------------
def check_session_active(page: Page) -> None:
    """Raise SessionClosedError when the CRM bounced us to the disconnected page."""
    if NOT_CONNECTED_PATH in (page.url or ''):
        logger.error(f"Session closed - redirected to {NOT_CONNECTED_PATH}")
        raise SessionClosedError()


async def wait_for_network_idle(page: Page, max_wait: float = 3.0) -> None:
    """Wait for network idle, but never longer than ``max_wait`` seconds.

    Tokko keeps long-lived connections open, so "idle" may never arrive. The
    session is always checked afterwards.
    """
    try:
        await page.wait_for_load_state('networkidle', timeout=max_wait * 1000)
    except PwTimeoutError:
        logger.debug(f"Network still busy after {max_wait}s, continuing.")
    check_session_active(page)


async def checked_goto(page: Page, url: str, timeout_ms: int = 60000, max_idle_wait: float = 3.0, log: Optional[Any] = None):
    log = log or logger
    try:
        await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
    except Exception as e:
        log.error(f"Navigation failed for {url}: {e}")
        raise
    check_session_active(page)
    await wait_for_network_idle(page, max_idle_wait)


# ---------------------------------------------------------------------------
# Element visibility
# ---------------------------------------------------------------------------
async def is_visible(locator: Locator, timeout_ms: int = 2000) -> bool:
    """True if ``locator`` becomes visible within ``timeout_ms``."""
    try:
        await locator.wait_for(state='visible', timeout=timeout_ms)
        return True
    except PwTimeoutError:
        return False


async def first_visible(page: Page, selectors: Sequence[str], timeout_ms: int = 500) -> Optional[Tuple[str, Locator]]:
    """First selector (in priority order) whose first match is visible."""
    for sel in selectors:
        locator = page.locator(sel).first
        try:
            if await is_visible(locator, timeout_ms):
                return sel, locator
        except SessionClosedError:
            raise
        except Exception as e:
            logger.debug(f"Selector '{sel}' failed: {e}")
            continue
    return None


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
def configure_logging(level: str = 'INFO', log_file: Optional[str] = None) -> None:
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, 'a', encoding='utf-8'))
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )
