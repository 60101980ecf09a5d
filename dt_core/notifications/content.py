# dt_core/notifications/content.py
"""
Structured email data per stage, and the pluggable renderer that turns it into
subject + HTML for the client and referral audiences.
"""
from __future__ import annotations

import base64
import logging
import mimetypes
from dataclasses import asdict, dataclass, field
from functools import lru_cache
from typing import Any, Optional, Protocol

from django.conf import settings
from django.template.loader import render_to_string
from django.utils.module_loading import import_string

from dt_core.clients.models import Client
from dt_core.screening.constants import FinalStatus, NotificationStage, ScreenResult, TestType
from dt_core.screening.models import DrugTest
from dt_core.screening.panels import substance_labels

logger = logging.getLogger(__name__)

DEFAULT_RENDERER = "dt_core.notifications.content.TemplateContentRenderer"


@dataclass(frozen=True)
class EmailContent:
    subject: str
    html: str


@dataclass(frozen=True)
class StageContent:
    referral: EmailContent
    # collected has no client email
    client: Optional[EmailContent] = None


@dataclass(frozen=True)
class StageData:
    client_name: str
    client_dob: Any = None
    collection_date: Any = None
    test_type: str = ""
    test_type_label: str = ""
    initial_screen_result: str = ""
    initial_screen_result_label: str = ""
    final_status: str = ""
    final_status_label: str = ""
    detected_substances: list[str] = field(default_factory=list)
    expected_positives: list[str] = field(default_factory=list)
    unexpected_positives: list[str] = field(default_factory=list)
    unexpected_negatives: list[str] = field(default_factory=list)
    is_dilute: bool = False
    confirmation_decision: str = ""
    confirmation_results: list[dict] = field(default_factory=list)
    breathalyzer_taken: bool = False
    breathalyzer_result: Optional[float] = None
    inconclusive_reason: str = ""
    headshot_data_uri: Optional[str] = None

    @classmethod
    def from_test(cls, test: DrugTest, *, client: Client, headshot_data_uri: str | None = None) -> "StageData":
        final_status = test.final_status or test.initial_screen_result
        return cls(
            client_name=client.full_name,
            client_dob=client.dob,
            collection_date=test.collection_date,
            test_type=test.test_type,
            test_type_label=_label(TestType, test.test_type),
            initial_screen_result=test.initial_screen_result,
            initial_screen_result_label=_label(ScreenResult, test.initial_screen_result),
            final_status=final_status,
            final_status_label=_label(FinalStatus, final_status),
            detected_substances=substance_labels(test.detected_substances or []),
            expected_positives=substance_labels(test.expected_positives or []),
            unexpected_positives=substance_labels(test.unexpected_positives or []),
            unexpected_negatives=substance_labels(test.unexpected_negatives or []),
            is_dilute=test.is_dilute,
            confirmation_decision=test.confirmation_decision,
            confirmation_results=list(test.confirmation_results or []),
            breathalyzer_taken=test.breathalyzer_taken,
            breathalyzer_result=test.bac,
            inconclusive_reason=test.inconclusive_reason,
            headshot_data_uri=headshot_data_uri,
        )

    def as_context(self) -> dict[str, Any]:
        return asdict(self)


def _label(choices, value: str) -> str:
    if not value:
        return ""
    try:
        return choices(value).label
    except ValueError:
        return value


def headshot_data_uri(client: Client) -> str | None:
    """
    Client photo as a base64 data URI for inline embedding, or None.
    """
    if not client.headshot:
        return None
    try:
        with client.headshot.open("rb") as fh:
            content = fh.read()
    except OSError:
        logger.warning("Headshot unreadable for client %s: %s", client.id, client.headshot.name)
        return None
    if not content:
        return None

    mime = mimetypes.guess_type(client.headshot.name)[0] or "image/jpeg"
    return f"data:{mime};base64,{base64.b64encode(content).decode('ascii')}"


class ContentRenderer(Protocol):
    def render(self, stage: str, data: StageData) -> StageContent: ...


SUBJECTS = {
    NotificationStage.COLLECTED: "Drug Test Sample Collected - {name}",
    NotificationStage.SCREENED: "Drug Test Results - {name}",
    NotificationStage.COMPLETE: "Final Drug Test Results - {name}",
    NotificationStage.INCONCLUSIVE: "Drug Test - Inconclusive Result - {name}",
}


class TemplateContentRenderer:
    """
    Renders notifications/email/<stage>_<audience>.html with the StageData fields as context.
    """

    template_dir = "notifications/email"

    def _render(self, stage: str, audience: str, data: StageData) -> EmailContent:
        html = render_to_string(
            f"{self.template_dir}/{stage}_{audience}.html",
            {**data.as_context(), "stage": stage, "audience": audience},
        )
        return EmailContent(subject=SUBJECTS[stage].format(name=data.client_name), html=html)

    def render(self, stage: str, data: StageData) -> StageContent:
        if stage not in SUBJECTS:
            raise ValueError(f"Unknown notification stage: {stage}")

        referral = self._render(stage, "referral", data)
        if stage == NotificationStage.COLLECTED:
            return StageContent(referral=referral)
        return StageContent(referral=referral, client=self._render(stage, "client", data))


@lru_cache(maxsize=None)
def _renderer_class(path: str):
    return import_string(path)


def get_content_renderer() -> ContentRenderer:
    conf = getattr(settings, "DRUG_TEST_NOTIFICATIONS", {}) or {}
    return _renderer_class(conf.get("CONTENT_RENDERER") or DEFAULT_RENDERER)()
