# tokko_leads/scroll.py
import logging
from dataclasses import dataclass
from typing import Optional

from playwright.async_api import Page

from .utils import check_session_active, wait_for_network_idle

logger = logging.getLogger('TokkoLeads.Scroll')

# Candidate containers in priority order; the first one that can scroll wins,
# otherwise the whole document is scrolled.
SCROLL_SCRIPT = """
(selector) => {
    const candidates = selector
        ? [document.querySelector(selector)]
        : [
            document.querySelector('[class*="scroll"]'),
            document.querySelector('[class*="list"]'),
            document.querySelector('[class*="table-container"]'),
            document.querySelector('[class*="content"]'),
            document.querySelector('main'),
            document.body,
        ];
    for (const container of candidates) {
        if (container && container.scrollHeight > container.clientHeight) {
            const previous = container.scrollTop;
            container.scrollTop = container.scrollHeight;
            return {
                previous: previous,
                current: container.scrollTop,
                max: container.scrollHeight - container.clientHeight,
            };
        }
    }
    const previous = window.scrollY;
    window.scrollTo(0, document.body.scrollHeight);
    return {
        previous: previous,
        current: window.scrollY,
        max: document.body.scrollHeight - window.innerHeight,
    };
}
"""

RESET_SCRIPT = """
() => {
    window.scrollTo(0, 0);
    document.documentElement.scrollTop = 0;
    document.body.scrollTop = 0;
    const containers = document.querySelectorAll(
        '[class*="scroll"], [class*="table"], [class*="list"], [style*="overflow"]');
    containers.forEach(c => { if (c.scrollTop !== undefined) { c.scrollTop = 0; } });
}
"""


@dataclass
class ScrollResult:
    previous: float
    current: float
    maximum: float

    def reached_end(self, threshold: float = 0.99) -> bool:
        return self.current >= self.maximum * threshold


class ScrollDriver:
    """Advances the lead list's scrollable surface."""

    def __init__(self, page: Page, container_selector: Optional[str] = None, idle_wait: float = 3.0):
        self.page = page
        self.container_selector = container_selector
        self.idle_wait = idle_wait

    async def reset(self) -> None:
        """Back to the top so the first sections are rendered."""
        await self.page.evaluate(RESET_SCRIPT)
        await self.settle()

    async def advance(self) -> ScrollResult:
        check_session_active(self.page)
        raw = await self.page.evaluate(SCROLL_SCRIPT, self.container_selector)
        # Lazy-loaded rows arrive after the scroll event
        await self.settle()
        result = ScrollResult(
            previous=float(raw.get('previous') or 0),
            current=float(raw.get('current') or 0),
            maximum=float(raw.get('max') or 0),
        )
        logger.debug(f"Scrolled {result.previous:.0f} -> {result.current:.0f} (max {result.maximum:.0f})")
        return result

    async def settle(self) -> None:
        await wait_for_network_idle(self.page, self.idle_wait)
