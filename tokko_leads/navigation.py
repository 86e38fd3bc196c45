# tokko_leads/navigation.py
import logging
from datetime import date
from typing import Optional

from playwright.async_api import Page, TimeoutError as PwTimeoutError

from .errors import SessionClosedError
from .queries import DATE_FILTER_QUERY, DATE_RANGE_QUERY
from .sections import SECTION_HEADERS, LeadStatus
from .smart_selector import SelectorResolver, unresolved
from .snapshot import (
    BRANCH_DROPDOWN_SELECTORS,
    HEADER_SWITCH_SELECTOR,
    ActionTarget,
    find_reassignment_toggle,
)
from .utils import check_session_active, checked_goto, first_visible, is_visible, wait_for_network_idle

logger = logging.getLogger('TokkoLeads.Navigation')

REASSIGN_SECTION_LABEL = SECTION_HEADERS[LeadStatus.PARA_REASIGNACION]
# Switches below this many pixels from the top are not the header toggle
HEADER_AREA_MAX_Y = 200


async def navigate_to_leads(page: Page, leads_url: str, idle_wait: float = 3.0) -> None:
    """Open the Oportunidades board directly by URL."""
    logger.info("Navigating to Oportunidades section via direct URL...")
    await checked_goto(page, leads_url, max_idle_wait=idle_wait, log=logger)
    check_session_active(page)
    logger.info("Navigated to Oportunidades section")


# ---------------------------------------------------------------------------
# Branch filter
# ---------------------------------------------------------------------------
async def _open_branch_dropdown(page: Page) -> bool:
    found = await first_visible(page, BRANCH_DROPDOWN_SELECTORS, timeout_ms=2000)
    if found:
        selector, dropdown = found
        await dropdown.click()
        logger.debug(f"Clicked Sucursal dropdown using: {selector}")
        return True

    in_filters = page.locator('.filter, [class*="filter"], [class*="Filter"]').first.locator('text=Sucursal').first
    if await is_visible(in_filters, 2000):
        await in_filters.click()
        logger.debug("Clicked Sucursal in filter area")
        return True

    try:
        await page.click('text=Sucursal', timeout=5000)
    except PwTimeoutError:
        return False
    logger.debug("Clicked Sucursal text directly")
    return True


async def apply_all_branches_filter(page: Page, idle_wait: float = 3.0) -> None:
    """Select "Todas las sucursales" so leads from every branch are listed."""
    logger.info("Applying \"Todas las sucursales\" filter...")
    try:
        await page.wait_for_load_state('domcontentloaded')
        await wait_for_network_idle(page, idle_wait)

        if not await _open_branch_dropdown(page):
            logger.warning("Could not find Sucursal dropdown")
            return

        todas = page.locator('text=Todas las sucursales').first
        if await is_visible(todas, 5000):
            await todas.click()
            logger.debug("Clicked \"Todas las sucursales\"")
        else:
            logger.warning("Could not find \"Todas las sucursales\" option in dropdown")

        aplicar = page.locator('text=Aplicar').first
        if await is_visible(aplicar, 3000):
            await aplicar.click()
            logger.debug("Clicked \"Aplicar\" button")
            await wait_for_network_idle(page, idle_wait)
            logger.info("Filter \"Todas las sucursales\" applied successfully")
        else:
            logger.warning("Could not find \"Aplicar\" button")
    except SessionClosedError:
        raise
    except Exception as e:
        logger.error(f"Failed to apply branch filter: {e}")


# ---------------------------------------------------------------------------
# Reassignment toggle
# ---------------------------------------------------------------------------
async def _reassign_section_visible(page: Page, timeout_ms: int) -> bool:
    return await is_visible(page.locator(f"text={REASSIGN_SECTION_LABEL}").first, timeout_ms)


async def _click_snapshot_toggle(page: Page) -> Optional[ActionTarget]:
    target = find_reassignment_toggle(await page.content())
    if target is None:
        return None
    await page.locator(target.selector).first.click()
    logger.debug(f"Clicked toggle via snapshot ({target.strategy}): {target.selector}")
    return target


async def _click_header_switch(page: Page) -> bool:
    for switch in await page.locator(HEADER_SWITCH_SELECTOR).all():
        box = await switch.bounding_box()
        if box and box['y'] < HEADER_AREA_MAX_Y:
            await switch.click()
            logger.debug("Clicked switch element in header")
            return True
    return False


async def _click_toggle(page: Page) -> bool:
    if await _click_snapshot_toggle(page) is not None:
        return True
    return await _click_header_switch(page)


async def enable_reassignment_toggle(page: Page, idle_wait: float = 3.0) -> None:
    """Turn on "Mostrar estados para reasignar" to reveal the reassignment sections."""
    logger.info("Enabling \"Mostrar estados para reasignar\" toggle...")
    try:
        await wait_for_network_idle(page, idle_wait)
        if await _reassign_section_visible(page, 2000):
            logger.debug("Toggle already enabled - \"Para reasignacion\" section is visible")
            return

        if not await _click_toggle(page):
            logger.warning("Could not find toggle to click")
            return

        await wait_for_network_idle(page, idle_wait)
        await page.wait_for_timeout(1000)
        visible = await _reassign_section_visible(page, 3000)
        if not visible:
            # The first click may have switched it off
            logger.debug("First click did not show section, trying again...")
            await _click_toggle(page)
            await wait_for_network_idle(page, idle_wait)
            await page.wait_for_timeout(1000)
            visible = await _reassign_section_visible(page, 3000)

        if visible:
            logger.info("Toggle \"Mostrar estados para reasignar\" activated successfully")
        else:
            logger.warning("Toggle clicked but \"Para reasignacion\" section not visible")
    except SessionClosedError:
        raise
    except Exception as e:
        logger.error(f"Failed to enable reassignment states toggle: {e}")


def describe_status_filter(status: LeadStatus) -> None:
    """Section filtering happens while reading rows; this only reports the choice."""
    if status == LeadStatus.ALL:
        logger.info("No status filter - will scrape all sections")
    else:
        logger.info(f"Will filter leads by section: {status.value}")


async def prepare_board(page: Page, status: LeadStatus, idle_wait: float = 3.0) -> None:
    """Filters applied once before the first scan. Failures are logged, not raised."""
    await apply_all_branches_filter(page, idle_wait)
    if status.needs_reassignment_toggle:
        await enable_reassignment_toggle(page, idle_wait)
    else:
        logger.debug(f"Status \"{status.value}\" does not need toggle - skipping")
    describe_status_filter(status)
    await wait_for_network_idle(page, idle_wait)


# ---------------------------------------------------------------------------
# Date filter
# ---------------------------------------------------------------------------
def format_filter_date(value: date) -> str:
    return value.strftime('%d/%m/%Y')


async def apply_date_filter(page: Page, resolver: SelectorResolver, start: date, end: date, idle_wait: float = 3.0) -> bool:
    logger.info(f"Applying date filter... (start: {start.isoformat()}, end: {end.isoformat()})")
    try:
        filters = await resolver.query(page, DATE_FILTER_QUERY)
        dropdown = filters.get('fecha_de_creacion_filter_dropdown', unresolved('fecha_de_creacion_filter_dropdown'))
        if not dropdown.resolved:
            logger.warning("Date filter dropdown not found")
            return False
        await dropdown.click()
        await wait_for_network_idle(page, idle_wait)

        fields = await resolver.query(page, DATE_RANGE_QUERY)
        start_input = fields.get('date_range.start_date_input', unresolved('date_range.start_date_input'))
        end_input = fields.get('date_range.end_date_input', unresolved('date_range.end_date_input'))
        apply_button = fields.get('aplicar_button', unresolved('aplicar_button'))
        if start_input.resolved:
            await start_input.fill(format_filter_date(start))
        if end_input.resolved:
            await end_input.fill(format_filter_date(end))
        if apply_button.resolved:
            await apply_button.click()
            await wait_for_network_idle(page, idle_wait)
        logger.info("Date filter applied successfully")
        return True
    except SessionClosedError:
        raise
    except Exception as e:
        logger.error(f"Failed to apply date filter: {e}")
        return False
