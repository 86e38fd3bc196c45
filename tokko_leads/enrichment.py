# tokko_leads/enrichment.py
import logging
from typing import Optional

from playwright.async_api import Page, TimeoutError as PwTimeoutError

from .errors import SessionClosedError
from .models import ContactDetails, PropertyDetails
from .parsing import (
    clean_property_address,
    parse_contact_panel,
    parse_property_panel,
    property_panel_loaded,
)
from .utils import check_session_active, first_visible, is_visible

logger = logging.getLogger('TokkoLeads.Enrichment')

CONTACT_ELEMENT_SELECTOR = '.class_contact_tooltip'
# qTip tooltips, most specific first
CONTACT_PANEL_SELECTORS = ['.contact_ttip', '.ui-tooltip.qtip', '.ui-tooltip', '.qtip']

FLOATING_PANEL_SCRIPT = """
() => {
    const elements = document.querySelectorAll('.ui-tooltip, .qtip, [class*="tooltip"]');
    for (const el of elements) {
        const rect = el.getBoundingClientRect();
        if (rect.width > 0 && rect.height > 0) {
            const text = el.innerText || '';
            if ((text.includes('@') && text.includes('.')) || text.includes('+54')) {
                return text;
            }
        }
    }
    return '';
}
"""

PROPERTY_MODAL_SELECTOR = '#quickDisplay_modal'
PROPERTY_FRAME_SELECTOR = '#quickDisplay_modal iframe'
MODAL_POLL_ATTEMPTS = 10
MODAL_POLL_INTERVAL_MS = 200
# Modal text shorter than this is just the frame chrome; the content is inside the iframe
MODAL_MIN_DIRECT_TEXT = 50


class ContactDetailsFetcher:
    """Opens a contact's popover and reads email / phone / mobile from it."""

    def __init__(self, page: Page, settle_ms: int = 800):
        self.page = page
        self.settle_ms = settle_ms

    async def _panel_text(self) -> str:
        found = await first_visible(self.page, CONTACT_PANEL_SELECTORS, timeout_ms=500)
        if found:
            selector, panel = found
            text = await panel.inner_text()
            if text and text.strip():
                logger.debug(f"Found contact tooltip with selector: {selector}")
                return text
        # Any floating element carrying contact data
        return await self.page.evaluate(FLOATING_PANEL_SCRIPT) or ''

    async def fetch(self, contact_name: Optional[str], index: int = 0) -> ContactDetails:
        try:
            check_session_active(self.page)
            name = (contact_name or '').strip()
            if not name:
                logger.debug(f"No contact name for lead {index + 1}")
                return ContactDetails()

            element = self.page.locator(CONTACT_ELEMENT_SELECTOR, has_text=name).first
            try:
                await element.scroll_into_view_if_needed(timeout=3000)
                await self.page.wait_for_timeout(200)
            except PwTimeoutError:
                pass

            if not await is_visible(element, 2000):
                logger.debug(f"Contact element not visible for: {name}")
                return ContactDetails()

            await element.click()
            check_session_active(self.page)
            details = ContactDetails()
            try:
                await self.page.wait_for_timeout(self.settle_ms)
                text = await self._panel_text()
                if text:
                    logger.debug(f"Popover text for {name}: {text[:100]}")
                    details = parse_contact_panel(text)
                    logger.debug(f"Extracted contact info for {name}: {details}")
                else:
                    logger.debug(f"No popover text found for {name}")
            except SessionClosedError:
                raise
            except Exception as e:
                logger.debug(f"Could not extract contact info: {e}")

            await self.page.keyboard.press('Escape')
            await self.page.wait_for_timeout(200)
            return details
        except SessionClosedError:
            raise
        except Exception as e:
            logger.error(f"Error extracting contact details for lead {index + 1}: {e}")
            return ContactDetails()


class PropertyDetailsFetcher:
    """Opens a property's quick-display modal and reads its id and agent."""

    def __init__(self, page: Page, attempts: int = MODAL_POLL_ATTEMPTS, interval_ms: int = MODAL_POLL_INTERVAL_MS):
        self.page = page
        self.attempts = attempts
        self.interval_ms = interval_ms

    async def _modal_text(self) -> str:
        modal = self.page.locator(PROPERTY_MODAL_SELECTOR)
        text = ''
        for attempt in range(self.attempts):
            text = await modal.inner_text()
            if len(text) < MODAL_MIN_DIRECT_TEXT and '<iframe' in await modal.inner_html():
                frame = self.page.frame_locator(PROPERTY_FRAME_SELECTOR).first
                try:
                    text = await frame.locator('body').inner_text()
                except PwTimeoutError:
                    text = ''
            if property_panel_loaded(text):
                break
            if attempt < self.attempts - 1:
                await self.page.wait_for_timeout(self.interval_ms)
        return text

    async def _dismiss(self) -> None:
        await self.page.keyboard.press('Escape')
        try:
            await self.page.wait_for_selector(PROPERTY_MODAL_SELECTOR, state='hidden', timeout=2000)
        except PwTimeoutError:
            # Force close by clicking outside
            await self.page.mouse.click(10, 10)
            try:
                await self.page.wait_for_selector(PROPERTY_MODAL_SELECTOR, state='hidden', timeout=2000)
            except PwTimeoutError:
                logger.debug("Property modal still visible after dismissal")

    async def fetch(self, address: Optional[str], index: int = 0) -> Optional[PropertyDetails]:
        """Details for ``address``, or None when there is no listing to open.

        A lead whose address is not a real listing shows an inline editable
        field instead of the modal; that is expected and returns None.
        """
        try:
            check_session_active(self.page)
            cleaned = clean_property_address(address)
            if not cleaned:
                logger.debug(f"No valid property address for lead {index + 1}")
                return None

            link = self.page.locator('a', has_text=cleaned).first
            try:
                await link.scroll_into_view_if_needed(timeout=3000)
                await self.page.wait_for_timeout(300)
            except PwTimeoutError:
                pass

            if not await is_visible(link, 2000):
                return None

            await link.click()
            check_session_active(self.page)
            details = None
            try:
                await self.page.wait_for_selector(PROPERTY_MODAL_SELECTOR, state='visible', timeout=2000)
                details = parse_property_panel(await self._modal_text())
            except PwTimeoutError:
                logger.debug(f"No modal appeared for property \"{cleaned}\" - lead {index + 1}")
            finally:
                await self._dismiss()
            return details
        except SessionClosedError:
            raise
        except Exception as e:
            logger.error(f"Error extracting property details for lead {index + 1}: {e}")
            return None
