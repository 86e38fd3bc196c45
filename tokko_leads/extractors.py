# tokko_leads/extractors.py
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from playwright.async_api import Page, TimeoutError as PwTimeoutError

from .errors import SessionClosedError
from .models import LeadFragment
from .parsing import collapse_whitespace, split_contact_and_agent
from .sections import LeadStatus, scan_rows
from .smart_selector import MAX_EXTRACTION_HTML, SelectorResolver, clean_html, truncate
from .utils import check_session_active

logger = logging.getLogger('TokkoLeads.Extractors')

ROW_SELECTOR = 'tr'
ROWS_READY_SELECTOR = 'tr, [class*="row"]'

EXTRACTION_SYSTEM_PROMPT = "You extract structured data from HTML. Return only valid JSON arrays."

EXTRACTION_PROMPT = """You are extracting lead/contact data from Tokko Broker CRM.

The page shows a TABLE of leads with these columns:
- Contacto: Contact name with agent in parentheses, e.g. "Johanna Rios (Emiliano Grieve)"
- Búsqueda / Propiedad: Property address, e.g. "Colombres 148 2" or "Benjamin Matienzo 1724 Piso 6"
- Vigencia: A progress bar (ignore this)
- Notas: Note icons
- Actualizado: Date like "26/11/2025 08:15"

Rows are grouped under section headers such as "Pendiente contactar (15)".

Extract ALL leads visible. For each lead return:
{{
  "contactName": "the contact name without the agent part",
  "agentName": "the name in parentheses (the responsible agent)",
  "propertyAddress": "the property address from Búsqueda/Propiedad column",
  "lastUpdated": "the date from Actualizado column",
  "status": "the section header like 'Pendiente contactar' if visible"
}}

Return ONLY a valid JSON array.

HTML:
{html}"""


class LeadExtractor(ABC):
    """Strategy that turns the currently rendered page into lead fragments."""

    @abstractmethod
    async def extract(self, status: LeadStatus) -> List[LeadFragment]:
        ...


class StructuralExtractor(LeadExtractor):
    """Reads table rows in render order and classifies them by section."""

    def __init__(self, page: Page, ready_timeout_ms: int = 5000):
        self.page = page
        self.ready_timeout_ms = ready_timeout_ms

    async def read_row_texts(self) -> List[str]:
        check_session_active(self.page)
        try:
            await self.page.wait_for_selector(ROWS_READY_SELECTOR, state='visible', timeout=self.ready_timeout_ms)
        except PwTimeoutError:
            logger.debug("No rows visible yet")
        check_session_active(self.page)
        return await self.page.locator(ROW_SELECTOR).all_text_contents()

    async def extract(self, status: LeadStatus) -> List[LeadFragment]:
        try:
            texts = await self.read_row_texts()
        except SessionClosedError:
            raise
        except Exception as e:
            logger.error(f"Error scraping visible leads: {e}")
            return []
        fragments = scan_rows(texts, status)
        logger.debug(f"Found {len(fragments)} visible leads in section \"{status.value}\"")
        return fragments


def fragments_from_records(records: Any, status: LeadStatus) -> List[LeadFragment]:
    """Map model-extracted records to fragments, honouring the requested section."""
    if not isinstance(records, list):
        return []
    target = status.header.lower() if status.header else None
    fragments: List[LeadFragment] = []
    for record in records:
        if not isinstance(record, dict):
            continue
        section = collapse_whitespace(record.get('status')) or None
        if target and (section or '').lower() != target:
            continue
        name = collapse_whitespace(record.get('contactName'))
        agent = collapse_whitespace(record.get('agentName')) or None
        if name and agent is None and '(' in name:
            name, agent = split_contact_and_agent(name)
        if not name:
            continue
        fragments.append(LeadFragment(
            contact_name=name,
            property_address=collapse_whitespace(record.get('propertyAddress')) or None,
            raw_timestamp=collapse_whitespace(record.get('lastUpdated')) or None,
            section=section,
            agent_hint=agent,
        ))
    return fragments


class SemanticExtractor(LeadExtractor):
    """Asks the language model to read leads out of the whole page HTML."""

    def __init__(self, page: Page, resolver: SelectorResolver):
        self.page = page
        self.resolver = resolver

    async def extract(self, status: LeadStatus) -> List[LeadFragment]:
        try:
            check_session_active(self.page)
            html = truncate(clean_html(await self.page.content()), MAX_EXTRACTION_HTML)
            logger.debug("Extracting leads from HTML with LLM...")
            raw = await self.resolver.complete(
                EXTRACTION_SYSTEM_PROMPT, EXTRACTION_PROMPT.format(html=html), max_tokens=8000)
            records: Optional[List[Dict[str, Any]]] = json.loads(raw or '[]')
        except SessionClosedError:
            raise
        except Exception as e:
            logger.error(f"Failed to extract leads from HTML: {e}")
            return []
        fragments = fragments_from_records(records, status)
        logger.debug(f"LLM extracted {len(fragments)} leads from HTML")
        return fragments
