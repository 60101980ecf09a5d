# dt_core/conftest.py
import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from dt_core.clients.models import Client, ReferralPreset, ReferralType
from dt_core.documents.services import DocumentService
from dt_core.notifications.dispatcher import DispatcherConfig
from dt_core.notifications.stager import NotificationStager

PDF_BYTES = b"%PDF-1.4\n1 0 obj <<>> endobj\ntrailer <<>>\n%%EOF\n"


@pytest.fixture(autouse=True)
def _media_root(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path / "media"


@pytest.fixture
def staff_user(db):
    User = get_user_model()
    return User.objects.create_user(
        username="operator",
        password="testpass",
        is_active=True,
        is_staff=True,
    )


@pytest.fixture
def api_client(staff_user):
    c = APIClient()
    c.force_authenticate(user=staff_user)
    return c


@pytest.fixture
def court_preset(db):
    return ReferralPreset.objects.create(
        kind="court",
        name="District Court 52-1",
        contacts=[
            {"name": "Officer Kane", "email": "kane@court.example.gov"},
            {"name": "", "email": "clerk@court.example.gov"},
        ],
    )


def _client(**overrides) -> Client:
    data = {
        "first_name": "Jamie",
        "last_name": "Rivera",
        "email": "jamie@example.com",
        "referral_type": ReferralType.SELF,
        "medications": [],
    }
    data.update(overrides)
    return Client.objects.create(**data)


@pytest.fixture
def self_client(db):
    return _client()


@pytest.fixture
def court_client(db, court_preset):
    return _client(
        first_name="Alex",
        last_name="Moreno",
        email="alex@example.com",
        referral_type=ReferralType.COURT,
        referral_preset=court_preset,
        medications=[
            {
                "name": "Adderall",
                "status": "active",
                "detected_as": ["amphetamines"],
                "require_confirmation": False,
            },
            {
                "name": "Old prescription",
                "status": "discontinued",
                "detected_as": ["oxycodone"],
                "require_confirmation": True,
            },
        ],
    )


@pytest.fixture
def make_document(db):
    def _make(filename="report.pdf", content=PDF_BYTES, **kwargs):
        return DocumentService.create_document(filename=filename, content=content, **kwargs)

    return _make


@pytest.fixture
def dispatcher_config():
    return DispatcherConfig(from_address="results@example.com", send_delay_seconds=0)


@pytest.fixture
def stager(dispatcher_config):
    return NotificationStager(config=dispatcher_config)


@pytest.fixture
def notifications_off():
    """
    Tests that build state step by step without the post_save stager sending mail.
    """
    from django.db.models.signals import post_save

    from dt_core.screening.models import DrugTest
    from dt_core.screening.signals.notifications import drug_test_post_save

    post_save.disconnect(drug_test_post_save, sender=DrugTest, dispatch_uid="drug_test_notifications")
    yield
    post_save.connect(drug_test_post_save, sender=DrugTest, dispatch_uid="drug_test_notifications")


@pytest.fixture
def make_client(db):
    return _client
