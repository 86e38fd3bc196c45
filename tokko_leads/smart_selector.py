# -- coding: utf-8 --
"""
smart_selector.py

Natural-language element lookup backed by an LLM. A query such as::

    {
      login_form {
        email_input
        password_input
      }
      result_rows[]
    }

is sent, together with the cleaned page HTML, to the model, which answers with a
CSS selector per field. Each field comes back as a ``FieldHandle`` tagged as a
single element, a collection, or unresolved.

The OpenAI client is constructed by the caller and passed in.
"""

import asyncio
import enum
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup, Comment
from playwright.async_api import Locator, Page

logger = logging.getLogger('TokkoLeads.SmartSelector')

MAX_SELECTOR_HTML = 40000
MAX_EXTRACTION_HTML = 60000

SELECTOR_SYSTEM_PROMPT = "You find CSS selectors in HTML. Return only valid JSON with selectors."

SELECTOR_PROMPT = """You are an expert at finding HTML elements. Given this HTML and a list of element descriptions, find the CSS selector for each.

ELEMENTS TO FIND:
{fields}

RULES:
1. Return a JSON object where each key is EXACTLY as listed above (copy the key name exactly)
2. The value should be a valid CSS selector
3. Use specific selectors: #id, [name="x"], [class*="specific"], input[type="email"]
4. For text-based finding use: button:has-text("Login"), a:has-text("Submit")
5. For arrays/lists (marked with []), return selector that matches ALL items
6. If element not found, use null
7. Return ONLY valid JSON, no explanations

HTML:
{html}"""


class FieldKind(str, enum.Enum):
    SINGLE = 'single'
    COLLECTION = 'collection'
    UNRESOLVED = 'unresolved'


@dataclass
class FieldHandle:
    """One resolved query field. ``locator`` is only valid when resolved."""
    path: str
    kind: FieldKind
    selector: Optional[str] = None
    page: Optional[Page] = None

    @property
    def resolved(self) -> bool:
        return self.kind != FieldKind.UNRESOLVED

    @property
    def locator(self) -> Locator:
        if not self.resolved:
            raise LookupError(f"Field '{self.path}' was not resolved")
        base = self.page.locator(self.selector)
        return base.first if self.kind == FieldKind.SINGLE else base

    async def click(self, **kwargs):
        logger.debug(f"Clicking: {self.path} ({self.selector})")
        await self.locator.click(**kwargs)

    async def fill(self, value: str):
        logger.debug(f"Filling: {self.path} ({self.selector})")
        await self.locator.fill(value)

    async def is_checked(self) -> bool:
        return await self.locator.is_checked()

    async def count(self) -> int:
        return await self.locator.count() if self.resolved else 0


# ---------------------------------------------------------------------------
# Query parsing
# ---------------------------------------------------------------------------
_TOKEN_RE = re.compile(r"[{}]|[^\s{}]+")


def parse_query(query: str) -> Dict[str, Any]:
    """``"{ a b[] c { d } }"`` -> ``{'a': None, 'b': [], 'c': {'d': None}}``."""
    tokens = _TOKEN_RE.findall(query or "")
    if tokens and tokens[0] == '{':
        tokens = tokens[1:]
        if tokens and tokens[-1] == '}':
            tokens = tokens[:-1]

    def parse_block(pos: int):
        result: Dict[str, Any] = {}
        while pos < len(tokens):
            tok = tokens[pos]
            if tok == '}':
                return result, pos + 1
            if tok == '{':
                # Stray brace without a field name
                pos += 1
                continue
            if pos + 1 < len(tokens) and tokens[pos + 1] == '{':
                child, pos = parse_block(pos + 2)
                result[tok] = child
                continue
            if tok.endswith('[]'):
                result[tok[:-2]] = []
            else:
                result[tok] = None
            pos += 1
        return result, pos

    structure, _ = parse_block(0)
    return structure


def field_paths(structure: Dict[str, Any], prefix: str = '') -> List[str]:
    paths = []
    for key, value in structure.items():
        path = f"{prefix}.{key}" if prefix else key
        if value is None:
            paths.append(path)
        elif isinstance(value, list):
            paths.append(f"{path}[]")
        elif isinstance(value, dict):
            paths.extend(field_paths(value, path))
    return paths


def clean_html(html: str) -> str:
    """Strip scripts, styles, comments, SVG and noisy attributes to save tokens."""
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup.find_all(["script", "style", "svg"]):
        tag.decompose()
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()
    for tag in soup.find_all(True):
        for attr in list(tag.attrs):
            if attr == "style" or attr.startswith("data-"):
                del tag[attr]
    return re.sub(r"\s+", " ", str(soup)).strip()


def truncate(html: str, limit: int) -> str:
    if len(html) <= limit:
        return html
    return html[:limit] + "\n...[truncated]..."


def strip_code_fences(text: str) -> str:
    text = (text or "").strip()
    text = re.sub(r"^```json\n?", "", text, flags=re.I)
    text = re.sub(r"^```\n?", "", text)
    text = re.sub(r"\n?```$", "", text)
    return text.strip()


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------
class SelectorResolver:
    """Resolves query fields to element handles with an OpenAI chat model."""

    def __init__(self, client: Any, model: str = 'gpt-4o-mini'):
        self.client = client
        self.model = model

    async def complete(self, system: str, prompt: str, max_tokens: int = 2000) -> str:
        response = await asyncio.to_thread(
            self.client.chat.completions.create,
            model=self.model,
            messages=[
                {'role': 'system', 'content': system},
                {'role': 'user', 'content': prompt},
            ],
            temperature=0,
            max_tokens=max_tokens,
        )
        content = response.choices[0].message.content if response.choices else None
        return strip_code_fences(content or '')

    async def find_selectors(self, html: str, structure: Dict[str, Any]) -> Dict[str, Optional[str]]:
        fields = "\n".join(f'- "{p}"' for p in field_paths(structure))
        prompt = SELECTOR_PROMPT.format(fields=fields, html=html)
        raw = await self.complete(SELECTOR_SYSTEM_PROMPT, prompt)
        try:
            data = json.loads(raw or '{}')
        except json.JSONDecodeError as e:
            logger.error(f"Selector model returned invalid JSON: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def build_handles(self, page: Page, structure: Dict[str, Any], selectors: Dict[str, Optional[str]], prefix: str = '') -> Dict[str, FieldHandle]:
        handles: Dict[str, FieldHandle] = {}
        for key, value in structure.items():
            path = f"{prefix}.{key}" if prefix else key
            if isinstance(value, dict):
                handles.update(self.build_handles(page, value, selectors, path))
                continue
            if isinstance(value, list):
                selector = selectors.get(f"{path}[]") or selectors.get(path)
                kind = FieldKind.COLLECTION
            else:
                selector = selectors.get(path)
                kind = FieldKind.SINGLE
            if not selector:
                logger.warning(f"No selector found for: {path}")
                handles[path] = FieldHandle(path=path, kind=FieldKind.UNRESOLVED)
            else:
                handles[path] = FieldHandle(path=path, kind=kind, selector=selector, page=page)
        return handles

    async def query(self, page: Page, query: str) -> Dict[str, FieldHandle]:
        """Resolve every field of ``query`` against the current page."""
        logger.debug("Executing smart query...")
        structure = parse_query(query)
        html = truncate(clean_html(await page.content()), MAX_SELECTOR_HTML)
        selectors = await self.find_selectors(html, structure)
        logger.debug(f"Found selectors: {selectors}")
        return self.build_handles(page, structure, selectors)


def unresolved(path: str) -> FieldHandle:
    return FieldHandle(path=path, kind=FieldKind.UNRESOLVED)
