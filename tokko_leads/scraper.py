# tokko_leads/scraper.py
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from openai import OpenAI
from playwright.async_api import Page, async_playwright

from .auth import create_browser, login, restore_session, save_session
from .collector import LeadCollector
from .config import CollectionOptions, ScraperConfig
from .enrichment import ContactDetailsFetcher, PropertyDetailsFetcher
from .errors import SessionClosedError, TokkoError
from .extractors import SemanticExtractor, StructuralExtractor
from .models import CollectionResult, Lead
from .navigation import apply_date_filter, navigate_to_leads, prepare_board
from .scroll import ScrollDriver
from .sections import LeadStatus
from .smart_selector import SelectorResolver
from .utils import check_session_active

logger = logging.getLogger('TokkoLeads.Scraper')

DEFAULT_LOOKBACK_DAYS = 7


@dataclass
class ScrapeRequest:
    cutoff_date: date = field(default_factory=lambda: date.today() - timedelta(days=DEFAULT_LOOKBACK_DAYS))
    status: LeadStatus = LeadStatus.ALL
    start_date: Optional[date] = None
    max_leads: Optional[int] = None
    extract_details: bool = False


@dataclass
class ScrapeResult:
    success: bool
    leads: List[Lead] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def session_closed(self) -> bool:
        return self.error_code == SessionClosedError.code

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {'success': self.success, 'leads': [lead.to_dict() for lead in self.leads]}
        if self.success:
            body['metadata'] = self.metadata
        else:
            body['error'] = self.error
            body['code'] = self.error_code
        return body


def build_resolver(config: ScraperConfig) -> SelectorResolver:
    if not config.openai_api_key:
        raise TokkoError("OpenAI API key not configured. Set OPENAI_API_KEY in .env")
    return SelectorResolver(OpenAI(api_key=config.openai_api_key), model=config.openai_model)


class TokkoLeadScraper:
    """One browser, one login, one collection run per call to ``run``."""

    def __init__(self, config: ScraperConfig, resolver: Optional[SelectorResolver] = None,
                 cookies: Optional[List[Dict[str, Any]]] = None):
        self.config = config
        self.resolver = resolver
        self.cookies = cookies
        self.saved_cookies: List[Dict[str, Any]] = []

    def build_collector(self, page: Page, options: CollectionOptions) -> LeadCollector:
        idle = self.config.network_idle_timeout

        async def prepare(status: LeadStatus) -> None:
            await prepare_board(page, status, idle)

        return LeadCollector(
            extractor=StructuralExtractor(page),
            scroller=ScrollDriver(page, idle_wait=idle),
            options=options,
            contact_fetcher=ContactDetailsFetcher(page),
            property_fetcher=PropertyDetailsFetcher(page),
            fallback_extractor=SemanticExtractor(page, self.resolver) if self.resolver else None,
            prepare=prepare,
            session_check=lambda: check_session_active(page),
        )

    async def _open_board(self, page: Page) -> None:
        if self.cookies:
            await restore_session(page.context, self.cookies)
            await navigate_to_leads(page, self.config.leads_url, self.config.network_idle_timeout)
            if '/go/' not in page.url:
                return
            logger.info("Stored session expired, logging in again")
        await login(page, self.config, self.resolver)
        await navigate_to_leads(page, self.config.leads_url, self.config.network_idle_timeout)

    async def collect(self, request: ScrapeRequest) -> CollectionResult:
        options = CollectionOptions.from_config(
            self.config,
            status=request.status.value,
            max_leads=request.max_leads,
            extract_details=request.extract_details,
        )
        async with async_playwright() as p:
            browser, context, page = await create_browser(p, self.config)
            try:
                await self._open_board(page)
                if request.start_date:
                    await apply_date_filter(page, self.resolver, request.start_date, date.today(),
                                            self.config.network_idle_timeout)
                result = await self.build_collector(page, options).collect(request.cutoff_date, request.status)
                self.saved_cookies = await save_session(context)
                return result
            finally:
                await browser.close()
                logger.info("Browser closed")

    async def run(self, request: ScrapeRequest) -> ScrapeResult:
        logger.info(
            f"🚀 Starting Tokko Lead Scraper (cutoff: {request.cutoff_date.isoformat()}, "
            f"maxLeads: {request.max_leads}, extractDetails: {request.extract_details}, "
            f"status: {request.status.value})")
        try:
            if self.resolver is None:
                self.resolver = build_resolver(self.config)
            result = await self.collect(request)
        except SessionClosedError as e:
            logger.error(f"Scraping failed, session closed ({len(e.partial_leads)} partial leads)")
            return ScrapeResult(success=False, leads=e.partial_leads, error=str(e), error_code=e.code)
        except Exception as e:
            logger.error(f"Scraping failed: {e}", exc_info=True)
            code = e.code if isinstance(e, TokkoError) else TokkoError.code
            return ScrapeResult(success=False, error=str(e), error_code=code)

        logger.info(f"✅ Scraping completed successfully ({result.total} leads)")
        return ScrapeResult(
            success=True,
            leads=result.leads,
            metadata={
                'scrapedAt': datetime.now().isoformat(),
                'cutoffDate': request.cutoff_date.isoformat(),
                'totalLeads': result.total,
                'terminalCondition': result.terminal.value,
                'scrollAttempts': result.scroll_attempts,
                'error': result.error,
            },
        )


async def scrape_leads(request: ScrapeRequest, config: Optional[ScraperConfig] = None) -> ScrapeResult:
    return await TokkoLeadScraper(config or ScraperConfig()).run(request)
