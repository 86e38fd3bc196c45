"""
Tests for the per-lead detail fetchers using a scriptable page double.
"""
import asyncio

import pytest
from playwright.async_api import TimeoutError as PwTimeoutError

from tokko_leads.enrichment import (
    CONTACT_ELEMENT_SELECTOR,
    PROPERTY_MODAL_SELECTOR,
    ContactDetailsFetcher,
    PropertyDetailsFetcher,
)
from tokko_leads.errors import SessionClosedError
from tokko_leads.utils import wait_for_network_idle

from .fakes import FakePage

NOT_CONNECTED = "https://www.tokkobroker.com/not_connected"


class FakeKeyboard:
    def __init__(self):
        self.pressed = []

    async def press(self, key):
        self.pressed.append(key)


class FakeMouse:
    def __init__(self):
        self.clicks = []

    async def click(self, x, y):
        self.clicks.append((x, y))


class FakeLocator:
    def __init__(self, page, selector, has_text=None):
        self.page = page
        self.selector = selector
        self.has_text = has_text

    @property
    def first(self):
        return self

    async def scroll_into_view_if_needed(self, timeout=None):
        pass

    async def wait_for(self, state='visible', timeout=None):
        if self.selector not in self.page.visible:
            raise PwTimeoutError(f"{self.selector} not visible")

    async def click(self, **kwargs):
        self.page.clicked.append((self.selector, self.has_text))
        if self.page.logout_on_click:
            self.page.url = NOT_CONNECTED

    async def inner_text(self):
        return self.page.texts.get(self.selector, '')

    async def inner_html(self):
        return ''


class ScriptedPage:
    """Elements listed in ``visible`` appear immediately; ``texts`` maps selector -> innerText."""

    def __init__(self, visible=(), texts=None, modal_opens=True, logout_on_click=False):
        self.url = "https://www.tokkobroker.com/leads/"
        self.visible = set(visible)
        self.texts = texts or {}
        self.modal_opens = modal_opens
        self.logout_on_click = logout_on_click
        self.clicked = []
        self.keyboard = FakeKeyboard()
        self.mouse = FakeMouse()

    def locator(self, selector, has_text=None):
        return FakeLocator(self, selector, has_text)

    async def wait_for_timeout(self, ms):
        pass

    async def evaluate(self, script, *args):
        return ''

    async def wait_for_selector(self, selector, state='visible', timeout=None):
        if selector == PROPERTY_MODAL_SELECTOR and state == 'visible' and not self.modal_opens:
            raise PwTimeoutError("modal did not open")


class TestContactDetailsFetcher:

    def test_reads_popover(self, contact_panel_text):
        page = ScriptedPage(visible={CONTACT_ELEMENT_SELECTOR, '.contact_ttip'},
                            texts={'.contact_ttip': contact_panel_text})

        details = asyncio.run(ContactDetailsFetcher(page, settle_ms=0).fetch("Johanna Rios"))

        assert details.email == "johanna.rios@gmail.com"
        assert details.mobile_phone == "+5491155556789"
        assert page.clicked == [(CONTACT_ELEMENT_SELECTOR, "Johanna Rios")]
        assert page.keyboard.pressed == ['Escape']

    def test_landline_only_popover(self):
        page = ScriptedPage(visible={CONTACT_ELEMENT_SELECTOR, '.contact_ttip'},
                            texts={'.contact_ttip': "Johanna Rios\nTel: 011 4555-1234"})

        details = asyncio.run(ContactDetailsFetcher(page, settle_ms=0).fetch("Johanna Rios"))

        assert details.phone == "01145551234"
        assert details.email is None

    def test_session_lost_on_click_propagates(self):
        page = ScriptedPage(visible={CONTACT_ELEMENT_SELECTOR, '.contact_ttip'}, logout_on_click=True)
        with pytest.raises(SessionClosedError):
            asyncio.run(ContactDetailsFetcher(page, settle_ms=0).fetch("Johanna Rios"))
        assert page.keyboard.pressed == []

    def test_invisible_contact_gives_empty_details(self):
        page = ScriptedPage()
        details = asyncio.run(ContactDetailsFetcher(page).fetch("Johanna Rios"))
        assert details.empty
        assert page.clicked == []

    def test_missing_name_gives_empty_details(self):
        assert asyncio.run(ContactDetailsFetcher(ScriptedPage()).fetch(None)).empty

    def test_page_errors_degrade_to_empty(self):
        details = asyncio.run(ContactDetailsFetcher(FakePage()).fetch("Johanna Rios", 3))
        assert details.empty

    def test_closed_session_propagates(self):
        with pytest.raises(SessionClosedError):
            asyncio.run(ContactDetailsFetcher(FakePage(NOT_CONNECTED)).fetch("Johanna Rios"))


class TestPropertyDetailsFetcher:

    def test_reads_modal(self, property_panel_text):
        page = ScriptedPage(visible={'a'}, texts={PROPERTY_MODAL_SELECTOR: property_panel_text})

        details = asyncio.run(PropertyDetailsFetcher(page, interval_ms=0).fetch("Colombres 148 2 +"))

        assert details.external_id == "MHO1234"
        assert details.agent_name == "Emiliano Grieve"
        assert page.clicked == [('a', "Colombres 148 2")]
        assert page.keyboard.pressed == ['Escape']

    def test_no_modal_returns_none_and_dismisses(self):
        page = ScriptedPage(visible={'a'}, modal_opens=False)

        details = asyncio.run(PropertyDetailsFetcher(page).fetch("Lavalle 300"))

        assert details is None
        assert page.keyboard.pressed == ['Escape']

    @pytest.mark.parametrize("address", [None, "", "+"])
    def test_absent_address(self, address):
        page = ScriptedPage(visible={'a'})
        assert asyncio.run(PropertyDetailsFetcher(page).fetch(address)) is None
        assert page.clicked == []

    def test_session_lost_on_click_propagates(self):
        page = ScriptedPage(visible={'a'}, logout_on_click=True)
        with pytest.raises(SessionClosedError):
            asyncio.run(PropertyDetailsFetcher(page, interval_ms=0).fetch("Lavalle 300"))

    def test_page_errors_degrade_to_none(self):
        assert asyncio.run(PropertyDetailsFetcher(FakePage()).fetch("Lavalle 300")) is None

    def test_closed_session_propagates(self):
        with pytest.raises(SessionClosedError):
            asyncio.run(PropertyDetailsFetcher(FakePage(NOT_CONNECTED)).fetch("Lavalle 300"))


class TestSessionGuard:

    def test_idle_wait_checks_session(self):
        page = FakePage(NOT_CONNECTED)
        with pytest.raises(SessionClosedError):
            asyncio.run(wait_for_network_idle(page, 0.1))
        assert page.idle_waits == 1

    def test_idle_wait_on_live_session(self):
        page = FakePage()
        asyncio.run(wait_for_network_idle(page, 0.1))
        assert page.idle_waits == 1
