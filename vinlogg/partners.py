"""
Partner links: invites by email, sign-in linking and the visibility set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from shared.types import PartnerStatus, User
from vinlogg.auth import AuthClient
from vinlogg.db import DbClient, PartnerRecord
from vinlogg.errors import ApiError

logger = logging.getLogger(__name__)

INVITE_ACCEPTED_MESSAGE = "Partner tillagd! Ni delar nu vinkällare."
INVITE_PENDING_MESSAGE = "Inbjudan skickad! Partnern kopplas när de loggar in."


@dataclass
class InviteResult:
    invite: PartnerRecord
    message: str


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def visible_user_ids(db: DbClient, user_id: str) -> List[str]:
    """The user first, then every accepted partner in either direction."""
    user_ids = [user_id]
    for link in db.list_partner_links(user_id, PartnerStatus.ACCEPTED):
        for candidate in (link.user_id, link.partner_user_id):
            if candidate and candidate not in user_ids:
                user_ids.append(candidate)
    return user_ids


def invite_partner(
    db: DbClient, auth: AuthClient, inviter: User, email: Optional[str]
) -> InviteResult:
    partner_email = normalize_email(email)
    if not partner_email:
        raise ApiError(400, "E-post krävs")
    if partner_email == normalize_email(inviter.email):
        raise ApiError(400, "Du kan inte bjuda in dig själv")
    if db.find_partner_link(inviter.id, partner_email):
        raise ApiError(400, "Denna person är redan inbjuden")

    partner_user_id = auth.find_user_id_by_email(partner_email)
    if partner_user_id == inviter.id:
        raise ApiError(400, "Du kan inte bjuda in dig själv")

    status = PartnerStatus.ACCEPTED if partner_user_id else PartnerStatus.PENDING
    invite = db.insert_partner_link(
        PartnerRecord(
            user_id=inviter.id,
            partner_email=partner_email,
            partner_user_id=partner_user_id,
            status=status.value,
        )
    )
    logger.info("Partner invite %s created with status %s", invite.id, status)
    message = (
        INVITE_ACCEPTED_MESSAGE
        if status == PartnerStatus.ACCEPTED
        else INVITE_PENDING_MESSAGE
    )
    return InviteResult(invite=invite, message=message)


def link_pending_invites(db: DbClient, user: User) -> List[PartnerRecord]:
    """Accept every pending invite addressed to the user's email."""
    email = normalize_email(user.email)
    if not email:
        return []
    linked = db.accept_pending_links(email, user.id)
    if linked:
        logger.info("Linked %d pending invite(s) for user %s", len(linked), user.id)
    return linked
