# tokko_leads/errors.py
from typing import List, Optional


SESSION_CLOSED_MESSAGE = (
    "Sesión cerrada inesperadamente. Otro usuario se conectó con las mismas credenciales."
)


class TokkoError(Exception):
    """Base class for scraper failures."""
    code = "SCRAPE_FAILED"


class SessionClosedError(TokkoError):
    """The browsing context was redirected to the "not connected" page.

    Happens when someone else logs in with the same credentials. It is fatal for
    the run and must never be swallowed by best-effort handlers. Leads gathered
    before the session dropped travel with the exception in ``partial_leads``.
    """
    code = "SESSION_CLOSED"

    def __init__(self, message: str = SESSION_CLOSED_MESSAGE, partial_leads: Optional[List] = None):
        super().__init__(message)
        self.partial_leads = list(partial_leads or [])


class LoginError(TokkoError):
    code = "LOGIN_FAILED"
