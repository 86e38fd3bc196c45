# tokko_leads/models.py
import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


def lead_key(contact_name: Optional[str], address: Optional[str], timestamp: Optional[str]) -> str:
    """Composite identity of a lead within one run."""
    return f"{contact_name or ''}-{address or ''}-{timestamp or ''}".lower()


@dataclass
class LeadFragment:
    """Candidate lead parsed from one rendered row."""
    contact_name: str
    property_address: Optional[str] = None
    raw_timestamp: Optional[str] = None
    section: Optional[str] = None
    agent_hint: Optional[str] = None

    @property
    def key(self) -> str:
        return lead_key(self.contact_name, self.property_address, self.raw_timestamp)


@dataclass
class ContactInfo:
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    mobile_phone: Optional[str] = None


@dataclass
class AgentInfo:
    name: Optional[str] = None


@dataclass
class PropertyInfo:
    external_id: Optional[str] = None
    address: Optional[str] = None


@dataclass
class ContactDetails:
    email: Optional[str] = None
    phone: Optional[str] = None
    mobile_phone: Optional[str] = None

    @property
    def empty(self) -> bool:
        return not (self.email or self.phone or self.mobile_phone)


@dataclass
class PropertyDetails:
    external_id: Optional[str] = None
    agent_name: Optional[str] = None


@dataclass
class Lead:
    """Canonical lead record, owned by the dedup store for one run."""
    contact: ContactInfo = field(default_factory=ContactInfo)
    agent: AgentInfo = field(default_factory=AgentInfo)
    listing: PropertyInfo = field(default_factory=PropertyInfo)
    last_updated: Optional[str] = None
    section: Optional[str] = None
    collected_at: datetime = field(default_factory=datetime.now)
    agent_from_modal: bool = False

    @classmethod
    def from_fragment(cls, fragment: LeadFragment,
                      contact: Optional[ContactDetails] = None,
                      details: Optional[PropertyDetails] = None) -> 'Lead':
        contact = contact or ContactDetails()
        details = details or PropertyDetails()
        return cls(
            contact=ContactInfo(
                name=fragment.contact_name or None,
                email=contact.email,
                phone=contact.phone,
                mobile_phone=contact.mobile_phone,
            ),
            agent=AgentInfo(name=details.agent_name or fragment.agent_hint or None),
            listing=PropertyInfo(
                external_id=details.external_id,
                address=fragment.property_address or None,
            ),
            last_updated=fragment.raw_timestamp or None,
            section=fragment.section,
            agent_from_modal=bool(details.agent_name),
        )

    @property
    def key(self) -> str:
        return lead_key(self.contact.name, self.listing.address, self.last_updated)

    @property
    def enriched(self) -> bool:
        return bool(self.contact.email or self.contact.phone or self.contact.mobile_phone
                    or self.listing.external_id or self.agent_from_modal)

    def merge(self, newer: 'Lead') -> 'Lead':
        """Combine a fresh observation of the same lead with this one.

        Plain row fields take the newer non-null value. Enrichment fields keep
        what was already fetched, so a re-scrolled duplicate never erases them.
        An agent read from the property modal outranks any row hint.
        """
        def latest(old, new):
            return new if new is not None else old

        def kept(old, new):
            return old if old is not None else new

        if self.agent_from_modal:
            agent_name = kept(self.agent.name, newer.agent.name)
        elif newer.agent_from_modal:
            agent_name = latest(self.agent.name, newer.agent.name)
        elif self.enriched:
            agent_name = kept(self.agent.name, newer.agent.name)
        else:
            agent_name = latest(self.agent.name, newer.agent.name)
        return Lead(
            contact=ContactInfo(
                name=latest(self.contact.name, newer.contact.name),
                email=kept(self.contact.email, newer.contact.email),
                phone=kept(self.contact.phone, newer.contact.phone),
                mobile_phone=kept(self.contact.mobile_phone, newer.contact.mobile_phone),
            ),
            agent=AgentInfo(name=agent_name),
            listing=PropertyInfo(
                external_id=kept(self.listing.external_id, newer.listing.external_id),
                address=latest(self.listing.address, newer.listing.address),
            ),
            last_updated=latest(self.last_updated, newer.last_updated),
            section=latest(self.section, newer.section),
            collected_at=self.collected_at,
            agent_from_modal=self.agent_from_modal or newer.agent_from_modal,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'contact': {
                'name': self.contact.name,
                'email': self.contact.email,
                'phone': self.contact.phone,
                'mobilePhone': self.contact.mobile_phone,
            },
            'agent': {'name': self.agent.name},
            'property': {
                'externalId': self.listing.external_id,
                'address': self.listing.address,
            },
            'section': self.section,
            'lastUpdated': self.last_updated,
            'collectedAt': self.collected_at.isoformat(),
        }


class TerminalCondition(str, enum.Enum):
    """Why the collection loop stopped."""
    DONE = "done"                              # end of scrollable content
    EXHAUSTED_RETRIES = "exhausted_retries"    # too many passes without new leads
    HIT_CUTOFF = "hit_cutoff"
    HIT_MAX_LEADS = "hit_max_leads"
    MAX_SCROLLS = "max_scrolls"
    ERRORED = "errored"


@dataclass
class CollectionResult:
    leads: List[Lead]
    terminal: TerminalCondition
    scroll_attempts: int = 0
    passes: int = 0
    error: Optional[str] = None

    @property
    def total(self) -> int:
        return len(self.leads)
