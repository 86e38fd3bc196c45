# tokko_leads/auth.py
import logging
from typing import Any, Dict, List, Tuple

from playwright.async_api import Browser, BrowserContext, Page, Playwright, TimeoutError as PwTimeoutError

from .config import ScraperConfig
from .errors import LoginError
from .queries import LOGIN_QUERY
from .smart_selector import FieldHandle, SelectorResolver, unresolved
from .utils import SessionProfile, new_context_with_profile

logger = logging.getLogger('TokkoLeads.Auth')

LOGIN_SETTLE_MS = 3000


async def create_browser(playwright: Playwright, config: ScraperConfig) -> Tuple[Browser, BrowserContext, Page]:
    logger.info(f"Launching browser... (headless: {config.headless})")
    browser = await playwright.chromium.launch(headless=config.headless, slow_mo=config.slow_mo)
    context = await new_context_with_profile(browser, SessionProfile())
    page = await context.new_page()
    logger.info("Browser launched successfully")
    return browser, context, page


async def _tick(checkbox: FieldHandle, label: str) -> None:
    if not checkbox.resolved:
        logger.debug(f"{label} checkbox not found (may not be required)")
        return
    try:
        if not await checkbox.is_checked():
            await checkbox.click()
            logger.debug(f"{label} checkbox clicked")
    except PwTimeoutError:
        logger.debug(f"Could not check {label} checkbox, trying click anyway")
        try:
            await checkbox.click()
        except PwTimeoutError as e:
            logger.debug(f"{label} checkbox click failed: {e}")


def verify_landing_url(url: str) -> None:
    """Raise LoginError if ``url`` shows that the login did not go through."""
    if 'invalid_login' in url or 'error' in url:
        raise LoginError(
            "Login failed - invalid credentials or missing required fields. "
            "Check TOKKO_EMAIL and TOKKO_PASSWORD in .env")
    if '/go/' in url and '/home' not in url:
        raise LoginError("Login failed - still on login page. Credentials may be incorrect.")


async def login(page: Page, config: ScraperConfig, resolver: SelectorResolver) -> bool:
    logger.info("Navigating to Tokko login page...")
    try:
        # Tokko runs scripts that never let the network go idle
        await page.goto(config.login_url, wait_until='domcontentloaded', timeout=config.navigation_timeout_ms)
        await page.wait_for_timeout(LOGIN_SETTLE_MS)

        logger.info("Querying login form elements...")
        fields: Dict[str, FieldHandle] = await resolver.query(page, LOGIN_QUERY)

        def field(name: str) -> FieldHandle:
            return fields.get(name, unresolved(name))

        email_input = field('email_input')
        if email_input.resolved:
            await email_input.fill(config.tokko_email)
            logger.debug("Email filled")
        else:
            logger.warning("Email input not found")

        password_input = field('password_input')
        if password_input.resolved:
            await password_input.fill(config.tokko_password)
            logger.debug("Password filled")
        else:
            logger.warning("Password input not found")

        await _tick(field('terms_checkbox'), 'Terms')
        await _tick(field('privacy_checkbox'), 'Privacy')
        await page.wait_for_timeout(500)

        login_button = field('login_button')
        if not login_button.resolved:
            raise LoginError("Login button not found on page")
        await login_button.click()
        logger.info("Login button clicked, waiting for navigation...")

        try:
            await page.wait_for_url(lambda url: url != config.login_url, wait_until='domcontentloaded',
                                    timeout=config.navigation_timeout_ms)
        except PwTimeoutError:
            logger.debug("Navigation wait timed out, continuing...")
        await page.wait_for_timeout(LOGIN_SETTLE_MS)

        verify_landing_url(page.url)
        logger.info(f"Login successful! (redirected to: {page.url})")
        return True
    except Exception as e:
        logger.error(f"Login failed: {e}")
        raise


async def save_session(context: BrowserContext) -> List[Dict[str, Any]]:
    cookies = await context.cookies()
    logger.info(f"Session saved (cookies: {len(cookies)})")
    return cookies


async def restore_session(context: BrowserContext, cookies: List[Dict[str, Any]]) -> None:
    await context.add_cookies(cookies)
    logger.info(f"Session restored (cookies: {len(cookies)})")
