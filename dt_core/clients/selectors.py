from __future__ import annotations

from uuid import UUID

from dt_core.clients.models import Client


def get_client(*, client_id: UUID) -> Client:
    return Client.objects.select_related("referral_preset").get(id=client_id)
