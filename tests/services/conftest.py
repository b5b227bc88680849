"""Master data for service tests that run inside the rolled-back ``session``."""

from decimal import Decimal

import pytest

from erp_kernel.services.catalog_service import CatalogService
from erp_kernel.services.party_service import PartyService


@pytest.fixture
def catalog(session, context) -> CatalogService:
    return CatalogService(session, context)


@pytest.fixture
def parties(session, context) -> PartyService:
    return PartyService(session, context)


@pytest.fixture
def tax_rates(catalog):
    catalog.create_tax_rate("GST5", "GST 5%", Decimal("5"))
    catalog.create_tax_rate("GST17", "GST 17%", Decimal("17"))
