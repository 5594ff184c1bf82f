from io import StringIO

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command

from modules.catalog.models import OriginCompany, Plan, Promotion
from modules.clients.models import Client
from modules.sales.models import CommercialStatusHistory, Sale, ShipmentRecord

pytestmark = pytest.mark.unit


def _seed() -> str:
    out = StringIO()
    call_command("seed_data", stdout=out)
    return out.getvalue()


def test_seed_creates_reference_data_and_sales():
    output = _seed()

    assert "Seed completed" in output
    usernames = ["admin", "vendedor", "backoffice"]
    assert get_user_model().objects.filter(username__in=usernames).count() == 3
    assert OriginCompany.objects.count() == 3
    assert Plan.objects.count() == 9
    assert Promotion.objects.count() == 6
    assert Client.objects.count() == 5
    assert Sale.objects.count() == 10
    assert CommercialStatusHistory.objects.count() == 10
    assert ShipmentRecord.objects.count() == Sale.objects.filter(chip_type="SIM").count()


def test_seed_is_repeatable():
    _seed()
    output = _seed()

    assert "sales=0" in output
    assert Sale.objects.count() == 10
