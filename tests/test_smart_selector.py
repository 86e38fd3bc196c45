"""
Tests for the query language, HTML cleanup and handle building of the smart selector.
"""
import asyncio
from types import SimpleNamespace

import pytest

from tokko_leads.queries import DATE_RANGE_QUERY, LOGIN_QUERY
from tokko_leads.smart_selector import (
    FieldKind,
    SelectorResolver,
    clean_html,
    field_paths,
    parse_query,
    strip_code_fences,
    truncate,
    unresolved,
)


class FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.requests = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(content):
    completions = FakeCompletions(content)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


class FakeHtmlPage:
    def __init__(self, html):
        self.html = html

    async def content(self):
        return self.html

    def locator(self, selector):
        return SimpleNamespace(selector=selector, first=f"first:{selector}")


class TestQueryParsing:

    def test_flat_query(self):
        assert parse_query(LOGIN_QUERY) == {
            'email_input': None,
            'password_input': None,
            'terms_checkbox': None,
            'privacy_checkbox': None,
            'login_button': None,
        }

    def test_nested_query(self):
        structure = parse_query(DATE_RANGE_QUERY)
        assert structure == {
            'date_range': {'start_date_input': None, 'end_date_input': None},
            'aplicar_button': None,
        }
        assert field_paths(structure) == [
            'date_range.start_date_input', 'date_range.end_date_input', 'aplicar_button']

    def test_collections(self):
        structure = parse_query("{ board { rows[] } title }")
        assert structure == {'board': {'rows': []}, 'title': None}
        assert field_paths(structure) == ['board.rows[]', 'title']

    def test_empty_query(self):
        assert parse_query("") == {}


class TestHtmlHelpers:

    def test_clean_html(self):
        html = ('<div data-id="1" style="color:red"><script>var a = 1;</script>'
                '<style>.x{}</style><!-- note --><svg><path/></svg>  <b>Hola</b></div>')
        assert clean_html(html) == '<div> <b>Hola</b></div>'

    def test_clean_html_single_quoted_attributes(self):
        html = "<div style='color:red' data-x='1' id='lead'><span class='name'>Juan</span></div>"
        assert clean_html(html) == '<div id="lead"><span class="name">Juan</span></div>'

    def test_truncate(self):
        assert truncate("abc", 5) == "abc"
        assert truncate("abcdef", 3).startswith("abc\n...[truncated]")

    @pytest.mark.parametrize("raw", ['```json\n{"a": 1}\n```', '```\n{"a": 1}\n```', '{"a": 1}'])
    def test_strip_code_fences(self, raw):
        assert strip_code_fences(raw) == '{"a": 1}'


class TestResolver:

    def test_query_builds_tagged_handles(self):
        client, completions = fake_client(
            '```json\n{"date_range.start_date_input": "#desde", "date_range.end_date_input": null, '
            '"aplicar_button": "button:has-text(\\"Aplicar\\")"}\n```')
        page = FakeHtmlPage('<div><input id="desde"><button>Aplicar</button></div>')
        resolver = SelectorResolver(client, model='gpt-4o-mini')

        handles = asyncio.run(resolver.query(page, DATE_RANGE_QUERY))

        assert handles['date_range.start_date_input'].kind == FieldKind.SINGLE
        assert handles['date_range.start_date_input'].selector == '#desde'
        assert handles['date_range.start_date_input'].locator == 'first:#desde'
        assert handles['date_range.end_date_input'].kind == FieldKind.UNRESOLVED
        assert handles['aplicar_button'].resolved
        request = completions.requests[0]
        assert request['model'] == 'gpt-4o-mini'
        assert '"date_range.start_date_input"' in request['messages'][1]['content']

    def test_collection_handle(self):
        client, _ = fake_client('{"rows[]": "tr.lead"}')
        handles = asyncio.run(SelectorResolver(client).query(FakeHtmlPage('<table></table>'), "{ rows[] }"))
        assert handles['rows'].kind == FieldKind.COLLECTION
        assert handles['rows'].locator.selector == 'tr.lead'

    def test_invalid_json_leaves_everything_unresolved(self):
        client, _ = fake_client("no selectors here")
        handles = asyncio.run(SelectorResolver(client).query(FakeHtmlPage('<form></form>'), LOGIN_QUERY))
        assert set(handles) == set(parse_query(LOGIN_QUERY))
        assert not any(h.resolved for h in handles.values())

    def test_unresolved_locator_raises(self):
        with pytest.raises(LookupError):
            unresolved('login_button').locator

    def test_unresolved_count_is_zero(self):
        assert asyncio.run(unresolved('rows').count()) == 0
