"""
Tests for configuration, run results and the command line helpers.
"""
import argparse
import asyncio
from datetime import date

import pandas as pd
import pytest

from tokko_leads.config import CollectionOptions, ScraperConfig
from tokko_leads.main import build_parser, export_to_csv, leads_frame, parse_cli_date
from tokko_leads.models import ContactDetails, Lead, LeadFragment
from tokko_leads.scraper import ScrapeRequest, ScrapeResult, TokkoLeadScraper
from tokko_leads.sections import LeadStatus


def lead(name="Juan Pérez", email=None):
    return Lead.from_fragment(LeadFragment(name, "Colombres 148 2", "26/11/2025 08:15", "Pendiente contactar", "Ana Gómez"),
                              contact=ContactDetails(email=email))


class TestConfig:

    def test_urls_derive_from_base(self):
        config = ScraperConfig(base_url="https://crm.tokkobroker.com/")
        assert config.login_url == "https://crm.tokkobroker.com/go/"
        assert config.leads_url == "https://crm.tokkobroker.com/leads/"

    def test_credentials(self):
        assert not ScraperConfig(tokko_email="", tokko_password="").has_credentials
        assert ScraperConfig(tokko_email="agente@gmail.com", tokko_password="x").has_credentials

    def test_collection_options_from_config(self):
        config = ScraperConfig(max_scrolls=50, max_leads=300)
        options = CollectionOptions.from_config(config, max_leads=None, extract_details=True, status='congelado')
        assert options.max_scrolls == 50
        assert options.max_leads == 300
        assert options.extract_details is True
        assert options.status == 'congelado'
        assert options.stall_limit == 5


class TestRun:

    def test_missing_openai_key_fails_before_browser(self):
        scraper = TokkoLeadScraper(ScraperConfig(openai_api_key=""))

        result = asyncio.run(scraper.run(ScrapeRequest(cutoff_date=date(2024, 1, 1))))

        assert result.success is False
        assert result.error_code == 'SCRAPE_FAILED'
        assert 'OPENAI_API_KEY' in result.error

    def test_success_payload(self):
        result = ScrapeResult(success=True, leads=[lead()], metadata={'totalLeads': 1})
        data = result.to_dict()
        assert data['success'] is True
        assert data['metadata'] == {'totalLeads': 1}
        assert data['leads'][0]['contact']['name'] == "Juan Pérez"

    def test_failure_payload(self):
        result = ScrapeResult(success=False, error="Sesión cerrada", error_code='SESSION_CLOSED')
        assert result.session_closed
        assert result.to_dict() == {'success': False, 'leads': [], 'error': "Sesión cerrada", 'code': 'SESSION_CLOSED'}

    def test_default_request(self):
        request = ScrapeRequest()
        assert request.status is LeadStatus.ALL
        assert request.cutoff_date < date.today()
        assert request.extract_details is False


class TestCommandLine:

    def test_arguments(self):
        args = build_parser().parse_args(['2024-01-01', '--status', 'evolucionando', '--max-leads', '20', '--details'])
        assert args.cutoff == date(2024, 1, 1)
        assert args.status == 'evolucionando'
        assert args.max_leads == 20
        assert args.details is True
        assert args.serve is False

    def test_bad_date(self):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_cli_date('01/01/2024')

    def test_leads_frame_columns(self):
        frame = leads_frame([lead(email="juan.perez@gmail.com"), lead(name="Ana Ruiz")])
        assert list(frame['contact.name']) == ["Juan Pérez", "Ana Ruiz"]
        assert frame.loc[0, 'contact.email'] == "juan.perez@gmail.com"
        assert 'property.address' in frame.columns

    def test_export_to_csv(self, tmp_path):
        filename = export_to_csv([lead()], directory=str(tmp_path))
        frame = pd.read_csv(filename)
        assert len(frame) == 1
        assert frame.loc[0, 'contact.name'] == "Juan Pérez"

    def test_export_nothing(self, tmp_path):
        assert export_to_csv([], directory=str(tmp_path)) is None
