# tokko_leads/sections.py
import enum
import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .models import LeadFragment
from .parsing import collapse_whitespace, parse_lead_text

logger = logging.getLogger('TokkoLeads.Sections')


class LeadStatus(str, enum.Enum):
    """Status sections of the Oportunidades board."""
    ALL = 'all'
    PARA_REASIGNACION = 'para_reasignacion'
    SIN_SEGUIMIENTO = 'sin_seguimiento'
    PENDIENTE_CONTACTAR = 'pendiente_contactar'
    ESPERANDO_RESPUESTA = 'esperando_respuesta'
    EVOLUCIONANDO = 'evolucionando'
    TOMAR_ACCION = 'tomar_accion'
    CONGELADO = 'congelado'

    @classmethod
    def parse(cls, value: Optional[str]) -> 'LeadStatus':
        """Unknown or empty values fall back to ALL."""
        if isinstance(value, cls):
            return value
        if not value:
            return cls.ALL
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.warning(f"Unknown status: {value}. Valid statuses: {', '.join(s.value for s in cls)}")
            return cls.ALL

    @property
    def header(self) -> Optional[str]:
        return SECTION_HEADERS.get(self)

    @property
    def needs_reassignment_toggle(self) -> bool:
        return self in (LeadStatus.PARA_REASIGNACION, LeadStatus.SIN_SEGUIMIENTO)


SECTION_HEADERS = {
    LeadStatus.PARA_REASIGNACION: 'Para reasignacion',
    LeadStatus.SIN_SEGUIMIENTO: 'Sin Seguimiento',
    LeadStatus.PENDIENTE_CONTACTAR: 'Pendiente contactar',
    LeadStatus.ESPERANDO_RESPUESTA: 'Esperando respuesta',
    LeadStatus.EVOLUCIONANDO: 'Evolucionando',
    LeadStatus.TOMAR_ACCION: 'Tomar Accion',
    LeadStatus.CONGELADO: 'Congelado',
}

HEADER_COUNT_RE = re.compile(r"\(\d+\)")


class SectionCursor(str, enum.Enum):
    NONE = 'none'
    TARGET = 'target'
    OTHER = 'other'


class RowKind(str, enum.Enum):
    HEADER = 'header'
    ROW = 'row'              # data row inside the wanted section
    SKIPPED = 'skipped'      # data row outside the wanted section
    SECTION_END = 'section_end'


@dataclass
class Classified:
    kind: RowKind
    section: Optional[str] = None


def header_label(text: str) -> Optional[str]:
    """Section label if ``text`` is a header row like "Pendiente contactar (15)"."""
    if not text or not HEADER_COUNT_RE.search(text):
        return None
    for label in SECTION_HEADERS.values():
        if label in text:
            return label
    return None


class SectionClassifier:
    """Walks rendered rows in order, tracking which section they belong to."""

    def __init__(self, status: LeadStatus = LeadStatus.ALL):
        self.status = LeadStatus.parse(status)
        self.target_header = self.status.header
        self.current_section: Optional[str] = None
        self.cursor = SectionCursor.NONE if self.target_header else SectionCursor.TARGET

    def classify(self, text: str) -> Classified:
        label = header_label(text)
        if label:
            logger.debug(f"Found section header: \"{collapse_whitespace(text)[:80]}\"")
            self.current_section = label
            if self.target_header:
                if label == self.target_header:
                    self.cursor = SectionCursor.TARGET
                    logger.debug(f"Entering target section: {label}")
                elif self.cursor == SectionCursor.TARGET:
                    self.cursor = SectionCursor.OTHER
                    logger.debug(f"Leaving target section, found: {label}")
                    return Classified(RowKind.SECTION_END, label)
                else:
                    self.cursor = SectionCursor.OTHER
            return Classified(RowKind.HEADER, label)

        if self.cursor == SectionCursor.TARGET:
            return Classified(RowKind.ROW, self.current_section)
        return Classified(RowKind.SKIPPED, self.current_section)


def scan_rows(texts: Iterable[str], status: LeadStatus = LeadStatus.ALL) -> List[LeadFragment]:
    """Fragments for the rows of one rendered pass that belong to ``status``.

    Scanning stops at the first header of a different section once the target
    section has been passed.
    """
    classifier = SectionClassifier(status)
    fragments: List[LeadFragment] = []
    for text in texts:
        result = classifier.classify(text or "")
        if result.kind == RowKind.SECTION_END:
            break
        if result.kind != RowKind.ROW:
            continue
        fragment = parse_lead_text(text)
        if fragment is None:
            continue
        fragment.section = result.section
        fragments.append(fragment)
    return fragments
