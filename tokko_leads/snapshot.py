# -- coding: utf-8 --
"""
snapshot.py

DOM heuristics expressed as pure functions over a page HTML snapshot, so they can
be checked against fixture markup without a browser. Each returns an
``ActionTarget`` whose selector the browser layer then clicks.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from bs4 import BeautifulSoup, NavigableString, Tag

REASSIGN_TOGGLE_LABEL = "Mostrar estados para reasignar"
TOGGLE_SELECTOR = 'input[type="checkbox"], [role="switch"], [class*="toggle"], [class*="switch"]'
# How many ancestors above the label are searched for a toggle
TOGGLE_SEARCH_DEPTH = 5

# Branch dropdown candidates, most specific first
BRANCH_DROPDOWN_SELECTORS = [
    'div:has-text("Sucursal"):not(:has-text("sucursales"))',
    'button:has-text("Sucursal")',
    '[role="combobox"]:has-text("Sucursal")',
    '[role="listbox"]:has-text("Sucursal")',
    'select:has-text("Sucursal")',
]
HEADER_SWITCH_SELECTOR = '[role="switch"], input[type="checkbox"], [class*="toggle-switch"], [class*="Toggle"], [class*="switch"]'


@dataclass
class ActionTarget:
    selector: str
    strategy: str
    description: str = ''


def _css_escape(value: str) -> str:
    return re.sub(r"([^a-zA-Z0-9_-])", r"\\\1", value)


def css_path(tag: Tag) -> str:
    """A selector that addresses ``tag`` uniquely within the snapshot."""
    parts: List[str] = []
    node = tag
    while isinstance(node, Tag) and node.name not in ('[document]',):
        if node.get('id'):
            parts.append(f"#{_css_escape(node['id'])}")
            break
        parent = node.parent
        if isinstance(parent, Tag):
            siblings = parent.find_all(node.name, recursive=False)
            index = next(i for i, s in enumerate(siblings, 1) if s is node)
            parts.append(f"{node.name}:nth-of-type({index})")
        else:
            parts.append(node.name)
        node = parent
    return " > ".join(reversed(parts))


def _label_nodes(soup: BeautifulSoup, label: str) -> List[NavigableString]:
    return [s for s in soup.find_all(string=True) if label in s]


def find_reassignment_toggle(html: str) -> Optional[ActionTarget]:
    """Locate the "Mostrar estados para reasignar" switch.

    Walks up from the label text through at most ``TOGGLE_SEARCH_DEPTH``
    ancestors looking for a toggle control; if none is found the label's own
    element is returned, since clicking it usually flips the switch.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    for text_node in _label_nodes(soup, REASSIGN_TOGGLE_LABEL):
        label_el = text_node.parent
        ancestor = label_el
        for _ in range(TOGGLE_SEARCH_DEPTH):
            if not isinstance(ancestor, Tag) or ancestor.name == '[document]':
                break
            toggle = ancestor.select_one(TOGGLE_SELECTOR)
            if toggle is not None:
                return ActionTarget(css_path(toggle), 'ancestor-toggle', 'toggle near reassignment label')
            ancestor = ancestor.parent
        if isinstance(label_el, Tag):
            return ActionTarget(css_path(label_el), 'label', 'reassignment label')
    return None
