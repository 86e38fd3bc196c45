# -- coding: utf-8 --
"""
parsing.py

Pure text helpers: row text -> lead fragment, display dates -> datetimes, and the
contact popover / property modal text -> detail fields. Nothing here touches the
browser and nothing here raises on malformed input.
"""

import re
from datetime import datetime, timedelta
from typing import Optional, Tuple

from email_validator import validate_email, EmailNotValidError
from phonenumbers import NumberParseException, is_possible_number, parse

from .models import ContactDetails, LeadFragment, PropertyDetails

__all__ = [
    "collapse_whitespace", "parse_lead_text", "resolve_date", "clean_property_address",
    "classify_phone", "parse_contact_panel", "parse_property_panel",
]

TIMESTAMP_RE = re.compile(r"(\d{2}/\d{2}/\d{4}\s+\d{2}:\d{2})")
CONTACT_RE = re.compile(r"^([^(]+?)\s*\(([^)]*)\)")

YEARS_RE = re.compile(r"(\d+)\s*a[ñn]os?")
MONTHS_RE = re.compile(r"(\d+)\s*mes(?:es)?")
DAYS_RE = re.compile(r"(\d+)\s*d[ií]as?")
HOURS_AGO_RE = re.compile(r"hace\s*(\d+)\s*hora")
MINUTES_AGO_RE = re.compile(r"hace\s*(\d+)\s*minuto")
DMY_RE = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})(?:\s+(\d{1,2}):(\d{2}))?")

EMAIL_RE = re.compile(r"[\w.-]+@[\w.-]+\.\w+")
PHONE_RE = re.compile(r"\+?\d[\d\s()-]{8,}")
MOBILE_PREFIX_RE = re.compile(r"^\+?549")
PHONE_REGION = "AR"
MIN_PHONE_DIGITS = 9

AVAILABLE_MARKER = "Disponible"
AGENT_MARKER = "Agente"
PROPERTY_ID_RE = re.compile(r"(?i:Disponible)\s+([A-Z]{2,4}\d+)\s*\|")
AGENT_RE = re.compile(
    r"Agente\s*\n?\s*([A-Za-zÀ-ÿ][A-Za-zÀ-ÿ\s]+?)(?:\s*\n|\s*Contactar|$)",
    re.IGNORECASE,
)
AGENT_BOILERPLATE = ("contact", "informaci")


def collapse_whitespace(text: Optional[str]) -> str:
    return re.sub(r"\s+", " ", "" if text is None else str(text)).strip()


# ---------------------------------------------------------------------------
# Row text
# ---------------------------------------------------------------------------
def parse_lead_text(text: Optional[str]) -> Optional[LeadFragment]:
    """Parse ``"Name (Agent) Address DD/MM/YYYY HH:MM"`` into a fragment.

    Missing pieces degrade the fragment (``None`` fields); only a row without a
    recognisable contact name yields ``None``. A row without the ``(Agent)``
    part still counts when it carries a timestamp: everything before the
    timestamp is taken as the contact name.
    """
    clean = collapse_whitespace(text)
    if not clean:
        return None

    date_match = TIMESTAMP_RE.search(clean)
    timestamp = date_match.group(1) if date_match else None

    contact_match = CONTACT_RE.match(clean)
    contact_name = None
    agent_name = None
    address = None

    if contact_match:
        contact_name = contact_match.group(1).strip() or None
        agent_name = contact_match.group(2).strip() or None
        if date_match:
            after_agent = contact_match.end()
            before_date = date_match.start()
            if before_date > after_agent:
                address = clean[after_agent:before_date].strip()
                address = re.sub(r"^[\s@]+", "", address).strip() or None
    elif date_match:
        contact_name = clean[:date_match.start()].strip() or None

    if not contact_name:
        return None

    return LeadFragment(
        contact_name=contact_name,
        property_address=address,
        raw_timestamp=timestamp,
        agent_hint=agent_name,
    )


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------
def _relative_duration(clean: str, now: datetime) -> Optional[datetime]:
    if not any(unit in clean for unit in ("año", "ano", "día", "dia", "mes")):
        return None
    total_days = 0
    years = YEARS_RE.search(clean)
    if years:
        total_days += int(years.group(1)) * 365
    months = MONTHS_RE.search(clean)
    if months:
        total_days += int(months.group(1)) * 30
    days = DAYS_RE.search(clean)
    if days:
        total_days += int(days.group(1))
    if total_days > 0:
        return now - timedelta(days=total_days)
    return None


def _time_ago(clean: str, now: datetime) -> Optional[datetime]:
    if "hace" not in clean:
        return None
    hours = HOURS_AGO_RE.search(clean)
    if hours:
        return now - timedelta(hours=int(hours.group(1)))
    minutes = MINUTES_AGO_RE.search(clean)
    if minutes:
        return now - timedelta(minutes=int(minutes.group(1)))
    return None


def _absolute(raw: str) -> Optional[datetime]:
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _day_month_year(raw: str) -> Optional[datetime]:
    match = DMY_RE.search(raw)
    if not match:
        return None
    day, month, year, hour, minute = match.groups()
    try:
        return datetime(int(year), int(month), int(day), int(hour or 0), int(minute or 0))
    except ValueError:
        return None


def resolve_date(text: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """Resolve a display date from the CRM into a naive local datetime.

    Order: "8 años 182 días" style durations (years are 365 days, months 30),
    "hace N horas/minutos", ISO dates, then ``DD/MM/YYYY[ HH:MM]``. Returns
    ``None`` when nothing matches.
    """
    if not text:
        return None
    now = now or datetime.now()
    raw = text.strip()
    clean = raw.lower()

    for rule in (_relative_duration, _time_ago):
        resolved = rule(clean, now)
        if resolved is not None:
            return resolved
    return _absolute(raw) or _day_month_year(raw)


# ---------------------------------------------------------------------------
# Contact popover
# ---------------------------------------------------------------------------
def _valid_email(token: str) -> bool:
    try:
        validate_email(token, check_deliverability=False)
        return True
    except EmailNotValidError:
        return False


def _possible_phone(candidate: str) -> bool:
    if len(re.sub(r"\D", "", candidate)) < MIN_PHONE_DIGITS:
        return False
    try:
        return is_possible_number(parse(candidate, PHONE_REGION))
    except NumberParseException:
        return False


def classify_phone(digits: str) -> str:
    """'mobile' when the number is +54 followed by the 9 mobile marker."""
    return "mobile" if MOBILE_PREFIX_RE.match(digits or "") else "landline"


def parse_contact_panel(text: Optional[str]) -> ContactDetails:
    details = ContactDetails()
    if not text:
        return details

    for token in EMAIL_RE.findall(text):
        token = token.strip()
        if _valid_email(token):
            details.email = token
            break

    for match in PHONE_RE.findall(text):
        if not _possible_phone(match):
            continue
        number = re.sub(r"[^+\d]", "", match)
        if classify_phone(number) == "mobile":
            if not details.mobile_phone:
                details.mobile_phone = number
        elif not details.phone:
            details.phone = number
    return details


# ---------------------------------------------------------------------------
# Property modal
# ---------------------------------------------------------------------------
def clean_property_address(address: Optional[str]) -> Optional[str]:
    """Strip the trailing "+" artifact; an empty or bare "+" address is absent."""
    if not address:
        return None
    cleaned = re.sub(r"\s*\+\s*$", "", address).strip()
    if not cleaned or cleaned == "+":
        return None
    return cleaned


def property_panel_loaded(text: Optional[str]) -> bool:
    text = text or ""
    return AVAILABLE_MARKER in text or AGENT_MARKER in text


def _agent_from_panel(text: str) -> Optional[str]:
    match = AGENT_RE.search(text)
    if not match:
        return None
    agent = match.group(1).strip().split("\n")[0].strip()
    lowered = agent.lower()
    if len(agent) < 2 or any(word in lowered for word in AGENT_BOILERPLATE):
        return None
    return agent


def parse_property_panel(text: Optional[str]) -> PropertyDetails:
    if not text:
        return PropertyDetails()
    id_match = PROPERTY_ID_RE.search(text)
    return PropertyDetails(
        external_id=id_match.group(1).strip() if id_match else None,
        agent_name=_agent_from_panel(text),
    )


def split_contact_and_agent(label: str) -> Tuple[Optional[str], Optional[str]]:
    """``"Johanna Rios (Emiliano Grieve)"`` -> (contact, agent)."""
    match = CONTACT_RE.match(collapse_whitespace(label))
    if not match:
        return (collapse_whitespace(label) or None, None)
    return (match.group(1).strip() or None, match.group(2).strip() or None)
