# dt_core/notifications/recipients.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable
from uuid import UUID

from dt_core.clients.models import Client, ReferralType
from dt_core.clients.selectors import get_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recipient:
    email: str
    name: str = ""


@dataclass(frozen=True)
class RecipientSet:
    client_email: str = ""
    referral_emails: list[str] = field(default_factory=list)
    referral_preset_id: UUID | None = None
    referral_title: str = ""
    referral_recipients: list[Recipient] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.client_email and not self.referral_emails

    def client_is_referral(self) -> bool:
        if not self.client_email:
            return False
        return self.client_email.lower() in {e.lower() for e in self.referral_emails}


class _RecipientMap:
    """
    Ordered by first appearance, keyed on lower-cased email.
    The first non-empty display name wins.
    """

    def __init__(self):
        self._by_key: dict[str, Recipient] = {}

    def add(self, *, email, name="") -> None:
        email = email.strip() if isinstance(email, str) else ""
        if not email:
            return
        name = name.strip() if isinstance(name, str) else ""
        key = email.lower()

        existing = self._by_key.get(key)
        if existing is None:
            self._by_key[key] = Recipient(email=email, name=name)
        elif not existing.name and name:
            self._by_key[key] = Recipient(email=existing.email, name=name)

    def extend(self, contacts: Iterable[dict] | None) -> None:
        for c in contacts or []:
            c = c or {}
            self.add(email=c.get("email"), name=c.get("name", ""))

    def __len__(self) -> int:
        return len(self._by_key)

    def values(self) -> list[Recipient]:
        return list(self._by_key.values())


def _self_display_name(client: Client) -> str:
    parts = [client.first_name, client.middle_initial, client.last_name]
    return " ".join(p for p in parts if p) or "Self"


def recipients_for_client(client: Client) -> RecipientSet:
    client_email = "" if client.disable_client_emails else (client.email or "")
    recipients = _RecipientMap()
    title = ""
    preset = None

    if client.referral_type in (ReferralType.COURT, ReferralType.EMPLOYER):
        preset = client.referral_preset
        if preset is not None:
            title = preset.name or client.get_referral_type_display()
            recipients.extend(preset.contacts)
    elif client.referral_type == ReferralType.SELF:
        title = "Self"

    recipients.extend(client.additional_recipients)

    # self clients are their own referral target
    if client.referral_type == ReferralType.SELF and client_email:
        recipients.add(email=client_email, name=_self_display_name(client))

    detailed = recipients.values()
    return RecipientSet(
        client_email=client_email,
        referral_emails=[r.email for r in detailed],
        referral_preset_id=preset.id if preset is not None else None,
        referral_title=title,
        referral_recipients=detailed,
    )


def resolve_recipients(*, client_id: UUID) -> RecipientSet:
    """
    Never raises: a failed lookup yields an empty set and the caller decides.
    """
    try:
        client = get_client(client_id=client_id)
    except Exception:
        logger.exception("Failed to fetch recipients for client %s", client_id)
        return RecipientSet()
    return recipients_for_client(client)
