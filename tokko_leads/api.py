# tokko_leads/api.py
import logging
from datetime import date, datetime
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import ScraperConfig
from .errors import SessionClosedError
from .scraper import ScrapeRequest, scrape_leads
from .sections import LeadStatus

logger = logging.getLogger('TokkoLeads.API')

API_NAME = 'Tokko Lead Scraper API'
API_VERSION = '1.0.0'

app = FastAPI(title=API_NAME, version=API_VERSION)


# ─────────────────────────────────────────────────────────────
# Models
# ─────────────────────────────────────────────────────────────
class ScrapeBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cutoff_date: date = Field(validation_alias=AliasChoices('cutoffDate', 'targetDate', 'cutoff_date'))
    status: LeadStatus = Field(LeadStatus.ALL, validation_alias=AliasChoices('status', 'targetStatus'))
    start_date: Optional[date] = Field(None, validation_alias=AliasChoices('startDate', 'start_date'))
    max_leads: Optional[int] = Field(None, gt=0, validation_alias=AliasChoices('maxLeads', 'max_leads'))
    extract_details: bool = Field(False, validation_alias=AliasChoices('extractDetails', 'extract_details'))

    @field_validator('status', mode='before')
    @classmethod
    def normalise_status(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    def to_request(self) -> ScrapeRequest:
        return ScrapeRequest(
            cutoff_date=self.cutoff_date,
            status=self.status,
            start_date=self.start_date,
            max_leads=self.max_leads,
            extract_details=self.extract_details,
        )


def get_config() -> ScraperConfig:
    return ScraperConfig()


def _error(status_code: int, message: str, code: Optional[str] = None, **extra: Any) -> JSONResponse:
    body: Dict[str, Any] = {'success': False, 'error': message}
    if code:
        body['code'] = code
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


# ─────────────────────────────────────────────────────────────
# Middleware / handlers
# ─────────────────────────────────────────────────────────────
@app.middleware('http')
async def log_requests(request: Request, call_next):
    logger.info(f"{request.method} {request.url.path}")
    return await call_next(request)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return _error(404, 'Endpoint not found')
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = '; '.join(
        f"{'.'.join(str(p) for p in err.get('loc', ())[1:]) or 'body'}: {err.get('msg')}"
        for err in exc.errors()
    )
    return _error(400, f"Invalid request ({problems}). Dates use YYYY-MM-DD", 'INVALID_REQUEST')


# ─────────────────────────────────────────────────────────────
# Routes
# ─────────────────────────────────────────────────────────────
@app.get('/')
async def root():
    return {
        'name': API_NAME,
        'version': API_VERSION,
        'endpoints': {
            'POST /api/leads/scrape': 'Start a scraping job',
            'GET /api/leads/health': 'Health check',
        },
    }


@app.get('/api/leads/health')
async def health():
    return {'success': True, 'status': 'healthy', 'timestamp': datetime.now().isoformat()}


@app.post('/api/leads/scrape')
async def scrape(body: ScrapeBody, config: ScraperConfig = Depends(get_config)):
    request = body.to_request()
    logger.info(
        f"Received scrape request (cutoff: {request.cutoff_date}, status: {request.status.value}, "
        f"maxLeads: {request.max_leads}, extractDetails: {request.extract_details})")
    try:
        result = await scrape_leads(request, config)
    except Exception as e:
        logger.error(f"Error in /api/leads/scrape: {e}", exc_info=True)
        return _error(500, 'Internal server error', 'SCRAPE_FAILED')

    if result.success:
        return {
            'success': True,
            'data': {
                'leads': [lead.to_dict() for lead in result.leads],
                'metadata': result.metadata,
            },
        }
    partial = [lead.to_dict() for lead in result.leads]
    if result.error_code == SessionClosedError.code:
        return _error(409, result.error, result.error_code, partialLeads=partial)
    return _error(500, result.error, result.error_code or 'SCRAPE_FAILED', partialLeads=partial)
