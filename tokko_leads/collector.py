# tokko_leads/collector.py
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Awaitable, Callable, List, Optional, Union

from .config import CollectionOptions
from .enrichment import ContactDetailsFetcher, PropertyDetailsFetcher
from .errors import SessionClosedError
from .extractors import LeadExtractor
from .models import (
    CollectionResult,
    ContactDetails,
    Lead,
    LeadFragment,
    PropertyDetails,
    TerminalCondition,
)
from .parsing import resolve_date
from .scroll import ScrollDriver
from .sections import LeadStatus
from .store import DedupStore

logger = logging.getLogger('TokkoLeads.Collector')

FilterStep = Callable[[LeadStatus], Awaitable[None]]
SessionCheck = Callable[[], None]


@dataclass
class CollectionState:
    """Mutable state of one run; owned by the collector."""
    cutoff: datetime
    status: LeadStatus
    store: DedupStore = field(default_factory=DedupStore)
    scroll_attempts: int = 0
    passes: int = 0
    stall_count: int = 0
    reached_cutoff: bool = False
    exhausted: bool = False
    hit_max_leads: bool = False


def as_cutoff(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


class LeadCollector:
    """Scan -> gate by date -> enrich -> merge -> scroll, until a terminal condition.

    All UI work is delegated to the extractor, scroll driver and fetchers, so the
    loop itself can run against in-memory fakes.
    """

    def __init__(self,
                 extractor: LeadExtractor,
                 scroller: ScrollDriver,
                 options: Optional[CollectionOptions] = None,
                 contact_fetcher: Optional[ContactDetailsFetcher] = None,
                 property_fetcher: Optional[PropertyDetailsFetcher] = None,
                 fallback_extractor: Optional[LeadExtractor] = None,
                 prepare: Optional[FilterStep] = None,
                 session_check: Optional[SessionCheck] = None):
        self.extractor = extractor
        self.scroller = scroller
        self.options = options or CollectionOptions()
        self.contact_fetcher = contact_fetcher
        self.property_fetcher = property_fetcher
        self.fallback_extractor = fallback_extractor
        self.prepare = prepare
        self.session_check = session_check or (lambda: None)

    # -----------------------------------------------------------------------
    # Passes
    # -----------------------------------------------------------------------
    async def _extract(self, status: LeadStatus) -> List[LeadFragment]:
        fragments = await self.extractor.extract(status)
        if not fragments and self.fallback_extractor is not None and self.options.semantic_fallback:
            logger.debug("No leads found with structural scrape, trying semantic extraction...")
            fragments = await self.fallback_extractor.extract(status)
        return fragments

    async def _enrich(self, fragment: LeadFragment, index: int) -> Lead:
        contact: Optional[ContactDetails] = None
        details: Optional[PropertyDetails] = None
        if self.options.extract_details:
            logger.info(f"Extracting details for: {fragment.contact_name}")
            if self.property_fetcher is not None:
                details = await self.property_fetcher.fetch(fragment.property_address, index)
            if self.contact_fetcher is not None:
                contact = await self.contact_fetcher.fetch(fragment.contact_name, index)
            logger.info(
                f"Extracted - propertyId: {details.external_id if details else None}, "
                f"agent: {details.agent_name if details else None}, "
                f"email: {contact.email if contact else None}")
        return Lead.from_fragment(fragment, contact, details)

    async def _scan(self, state: CollectionState, final: bool = False) -> None:
        """One pass over the rendered rows.

        Regular passes stop at the first row older than the cutoff. The final
        pass after the end of content only filters such rows out.
        """
        store = state.store
        fragments = await self._extract(state.status)

        to_process: List[LeadFragment] = []
        pending = set()
        for fragment in fragments:
            key = fragment.key
            if store.has(key):
                # Re-scrolled overlap: refresh plain fields, enrichment is kept by the merge
                store.upsert(key, Lead.from_fragment(fragment))
                continue
            if key in pending:
                continue
            lead_date = resolve_date(fragment.raw_timestamp)
            if lead_date is not None and lead_date < state.cutoff:
                if final:
                    continue
                logger.info(
                    f"Reached target date, stopping scraping (last lead date: {fragment.raw_timestamp}, "
                    f"target: {state.cutoff.isoformat()})")
                state.reached_cutoff = True
                break
            to_process.append(fragment)
            pending.add(key)

        logger.info(f"Processing {len(to_process)} leads, extractDetails: {self.options.extract_details}")
        for fragment in to_process:
            if store.size() >= self.options.max_leads:
                logger.info(f"Reached maxLeads limit: {self.options.max_leads}")
                state.hit_max_leads = True
                break
            lead = await self._enrich(fragment, store.size())
            store.upsert(fragment.key, lead)

    # -----------------------------------------------------------------------
    # Main loop
    # -----------------------------------------------------------------------
    async def _run(self, state: CollectionState) -> TerminalCondition:
        opts = self.options
        if self.prepare is not None:
            await self.prepare(state.status)
        await self.scroller.reset()

        while True:
            if state.store.size() >= opts.max_leads:
                state.hit_max_leads = True
                return TerminalCondition.HIT_MAX_LEADS
            if state.scroll_attempts >= opts.max_scrolls:
                return TerminalCondition.MAX_SCROLLS

            self.session_check()
            previous = state.store.size()
            state.passes += 1
            await self._scan(state)

            if state.reached_cutoff:
                return TerminalCondition.HIT_CUTOFF
            if state.hit_max_leads:
                return TerminalCondition.HIT_MAX_LEADS

            added = state.store.size() - previous
            if added == 0:
                state.stall_count += 1
                logger.debug(f"No new leads found (attempt {state.stall_count}/{opts.stall_limit})")
                if state.stall_count >= opts.stall_limit:
                    return TerminalCondition.EXHAUSTED_RETRIES
            else:
                state.stall_count = 0
                logger.info(f"Found {added} new leads, total: {state.store.size()}")

            state.scroll_attempts += 1
            logger.debug(f"Scrolling... ({state.scroll_attempts}/{opts.max_scrolls})")
            result = await self.scroller.advance()

            if result.reached_end(opts.end_threshold):
                # Trailing rows may render only after the last scroll settles
                await self.scroller.settle()
                state.passes += 1
                await self._scan(state, final=True)
                state.exhausted = True
                logger.info("Reached end of scroll")
                if state.hit_max_leads:
                    return TerminalCondition.HIT_MAX_LEADS
                return TerminalCondition.DONE

    async def collect(self, cutoff: Union[date, datetime], status: Union[LeadStatus, str, None] = None) -> CollectionResult:
        """Collect leads newer than ``cutoff`` from the requested section.

        Non-fatal errors end the run early but still return what was gathered
        (``TerminalCondition.ERRORED``). A closed session always propagates, with
        the partial leads attached to the exception.
        """
        state = CollectionState(
            cutoff=as_cutoff(cutoff),
            status=LeadStatus.parse(status if status is not None else self.options.status),
        )
        opts = self.options
        logger.info(
            f"Starting infinite scroll lead scraping (target date: {state.cutoff.isoformat()}, "
            f"status: {state.status.value}, maxScrolls: {opts.max_scrolls}, maxLeads: {opts.max_leads}, "
            f"extractDetails: {opts.extract_details})")

        error = None
        try:
            terminal = await self._run(state)
        except SessionClosedError as e:
            e.partial_leads = state.store.export()
            raise
        except Exception as e:
            logger.error(f"Collection aborted, returning {state.store.size()} leads collected so far: {e}", exc_info=True)
            terminal = TerminalCondition.ERRORED
            error = str(e)

        leads = state.store.export()
        logger.info(
            f"Lead scraping completed (total: {len(leads)}, scroll attempts: {state.scroll_attempts}, "
            f"status: {state.status.value}, terminal: {terminal.value})")
        return CollectionResult(
            leads=leads,
            terminal=terminal,
            scroll_attempts=state.scroll_attempts,
            passes=state.passes,
            error=error,
        )
