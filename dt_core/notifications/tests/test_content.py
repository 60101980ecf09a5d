# dt_core/notifications/tests/test_content.py
import pytest
from django.core.files.base import ContentFile

from dt_core.notifications.content import (
    EmailContent,
    StageContent,
    StageData,
    TemplateContentRenderer,
    get_content_renderer,
    headshot_data_uri,
)
from dt_core.screening.services import DrugTestService

pytestmark = pytest.mark.django_db


class PlainRenderer:
    def render(self, stage, data):
        return StageContent(referral=EmailContent(subject=stage, html=data.client_name))


def _screened(client, detected, **kwargs):
    test = DrugTestService.record_collection(client_id=client.id, test_type="15-panel-instant", **kwargs)
    return DrugTestService.record_screen(test_id=test.id, detected_substances=detected)


def test_stage_data_uses_display_labels(court_client):
    test = _screened(court_client, ["amphetamines", "thc"])
    data = StageData.from_test(test, client=court_client)

    assert data.client_name == "Alex Moreno"
    assert data.test_type_label == "15-Panel Instant"
    assert data.initial_screen_result_label == "Unexpected Positive"
    # not final yet: falls back to the screen result
    assert data.final_status == "unexpected-positive"
    assert data.unexpected_positives == ["THC"]


def test_collected_stage_has_no_client_email(court_client):
    test = DrugTestService.record_collection(client_id=court_client.id, test_type="11-panel-lab")
    content = TemplateContentRenderer().render("collected", StageData.from_test(test, client=court_client))

    assert content.client is None
    assert content.referral.subject == "Drug Test Sample Collected - Alex Moreno"
    assert "Alex Moreno" in content.referral.html


def test_screened_stage_renders_both_audiences(court_client):
    test = _screened(court_client, ["amphetamines", "thc"], breathalyzer_taken=True, breathalyzer_result="0.020")
    content = TemplateContentRenderer().render("screened", StageData.from_test(test, client=court_client))

    assert content.client.subject == "Drug Test Results - Alex Moreno"
    assert "THC" in content.referral.html
    assert "Amphetamines" in content.referral.html


def test_unknown_stage_is_rejected(self_client):
    test = DrugTestService.record_collection(client_id=self_client.id, test_type="15-panel-instant")
    with pytest.raises(ValueError):
        TemplateContentRenderer().render("archived", StageData.from_test(test, client=self_client))


def test_renderer_is_configurable(settings):
    settings.DRUG_TEST_NOTIFICATIONS = {
        **settings.DRUG_TEST_NOTIFICATIONS,
        "CONTENT_RENDERER": "dt_core.notifications.tests.test_content.PlainRenderer",
    }
    assert isinstance(get_content_renderer(), PlainRenderer)


def test_headshot_is_inlined_as_data_uri(self_client):
    assert headshot_data_uri(self_client) is None

    self_client.headshot.save("jamie.png", ContentFile(b"\x89PNG\r\n"), save=True)
    uri = headshot_data_uri(self_client)

    assert uri.startswith("data:image/png;base64,")
