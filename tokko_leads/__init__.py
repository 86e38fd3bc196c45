"""Lead collection for the Tokko Broker CRM "Oportunidades" board."""

from .config import CollectionOptions, ScraperConfig
from .errors import LoginError, SessionClosedError, TokkoError
from .models import CollectionResult, Lead, TerminalCondition
from .sections import LeadStatus

__version__ = '1.0.0'
