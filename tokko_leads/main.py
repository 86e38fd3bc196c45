# tokko_leads/main.py
import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import date, datetime
from typing import List, Optional

import pandas as pd
import uvicorn

from .config import ScraperConfig
from .models import Lead
from .scraper import ScrapeRequest, ScrapeResult, TokkoLeadScraper
from .sections import LeadStatus
from .utils import configure_logging

logger = logging.getLogger('TokkoLeads')

EXPORT_DIR = 'exports'


def parse_cli_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}'. Use YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='tokko_leads',
        description='Collect leads from the Tokko Broker Oportunidades board.',
    )
    parser.add_argument('cutoff', nargs='?', type=parse_cli_date,
                        help='Collect leads updated on or after this date (default: 7 days ago)')
    parser.add_argument('--status', default='all', choices=[s.value for s in LeadStatus])
    parser.add_argument('--start-date', type=parse_cli_date, help='Apply the creation-date filter from this date')
    parser.add_argument('--max-leads', type=int)
    parser.add_argument('--details', action='store_true', help='Open each lead for email, phones, property ID and agent')
    parser.add_argument('--csv', action='store_true', help='Also export the leads to exports/leads_<timestamp>.csv')
    parser.add_argument('--serve', action='store_true', help='Start the HTTP API instead of running one scrape')
    return parser


def leads_frame(leads: List[Lead]) -> pd.DataFrame:
    """One row per lead with dotted column names (``contact.email``, ...)."""
    return pd.json_normalize([lead.to_dict() for lead in leads])


def export_to_csv(leads: List[Lead], directory: str = EXPORT_DIR) -> Optional[str]:
    if not leads:
        return None
    os.makedirs(directory, exist_ok=True)
    filename = os.path.join(directory, f"leads_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv")
    leads_frame(leads).to_csv(filename, index=False)
    logger.info(f"📄 Exported leads to {filename}")
    return filename


def display_summary(result: ScrapeResult) -> None:
    if not result.success:
        logger.error(f"Run failed ({result.error_code}): {result.error}")
        return
    meta = result.metadata
    print(f"\n--- EXECUTION COMPLETE ---\nTotal Leads: {meta.get('totalLeads')}\n"
          f"Stopped: {meta.get('terminalCondition')}\nScroll Attempts: {meta.get('scrollAttempts')}\n"
          f"--------------------------\n", file=sys.stderr)


def serve(config: ScraperConfig) -> None:
    logger.info(f"🚀 Tokko Lead Scraper API running on port {config.port}")
    logger.info(f"   Environment: {config.env}")
    logger.info(f"   Health check: http://localhost:{config.port}/api/leads/health")
    uvicorn.run('tokko_leads.api:app', host='0.0.0.0', port=config.port, log_level=config.log_level.lower())


async def run_once(config: ScraperConfig, request: ScrapeRequest) -> ScrapeResult:
    scraper = TokkoLeadScraper(config)
    return await scraper.run(request)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = ScraperConfig()
    configure_logging(config.log_level, config.log_file)

    if args.serve:
        serve(config)
        return 0

    if not config.has_credentials:
        logger.error("TOKKO_EMAIL and TOKKO_PASSWORD must be set in .env")
        return 1

    request = ScrapeRequest(
        status=LeadStatus.parse(args.status),
        start_date=args.start_date,
        max_leads=args.max_leads,
        extract_details=args.details,
    )
    if args.cutoff:
        request.cutoff_date = args.cutoff

    result = asyncio.run(run_once(config, request))
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str))
    if result.success and args.csv:
        export_to_csv(result.leads)
    display_summary(result)
    return 0 if result.success else 1


if __name__ == '__main__':
    sys.exit(main())
