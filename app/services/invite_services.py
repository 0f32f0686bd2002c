import logging
import secrets
from datetime import datetime, timedelta, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from fastapi import HTTPException
from app.core.config import settings
from app.core.dependencies import check_group_membership, is_group_member
from app.models.group_invitation import GroupInvitation, InviteStatus
from app.models.group_member import GroupMember
from app.models.user import User
from app.services.group_services import add_member
from app.services.user_queries import get_user_by_email

logger = logging.getLogger(__name__)

def _aware(dt: datetime) -> datetime:
    # sqlite hands back naive datetimes
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)

async def create_invite(db: AsyncSession, group_id: int, inviter_id: int, email: str):
    await check_group_membership(db, group_id, inviter_id)
    email = email.lower()

    already_member = await db.scalar(
        select(GroupMember.id)
        .join(User, User.id == GroupMember.user_id)
        .where(GroupMember.group_id == group_id, User.email == email)
    )
    if already_member:
        raise HTTPException(400, "User is already a member of this group")

    now = datetime.now(timezone.utc)

    pending = await db.execute(
        select(GroupInvitation).where(
            GroupInvitation.group_id == group_id,
            GroupInvitation.email == email,
            GroupInvitation.status == InviteStatus.PENDING,
        )
    )
    if any(_aware(inv.expires_at) > now for inv in pending.scalars().all()):
        raise HTTPException(400, "An invitation has already been sent to this email")

    invitee = await get_user_by_email(db, email)

    invitation = GroupInvitation(
        token=secrets.token_hex(32),
        email=email,
        status=InviteStatus.PENDING,
        group_id=group_id,
        invited_by=inviter_id,
        invited_user_id=invitee.id if invitee else None,
        expires_at=now + timedelta(days=settings.INVITE_EXPIRE_DAYS),
    )

    db.add(invitation)
    await db.commit()
    await db.refresh(invitation)

    logger.info("invite sent group=%s by user=%s", group_id, inviter_id)
    return invitation

async def accept_invite(db: AsyncSession, token: str, user: User):
    res = await db.execute(select(GroupInvitation).where(GroupInvitation.token == token))
    invitation = res.scalar_one_or_none()

    if not invitation:
        raise HTTPException(404, "Invalid invitation token")

    if invitation.status == InviteStatus.PENDING and _aware(invitation.expires_at) < datetime.now(timezone.utc):
        invitation.status = InviteStatus.EXPIRED
        await db.commit()
        raise HTTPException(410, "Invitation has expired")

    if invitation.status == InviteStatus.EXPIRED:
        raise HTTPException(410, "Invitation has expired")

    if invitation.email != user.email.lower():
        raise HTTPException(403, "This invitation was sent to a different email")

    if invitation.status == InviteStatus.ACCEPTED:
        if await is_group_member(db, invitation.group_id, user.id):
            return {"status": "already_member", "group_id": invitation.group_id}
        raise HTTPException(409, "Invitation has already been used")

    invitation.status = InviteStatus.ACCEPTED
    invitation.invited_user_id = user.id
    group_id = invitation.group_id

    await add_member(db, group_id, user.id)
    await db.commit()

    logger.info("invite accepted group=%s user=%s", group_id, user.id)
    return {"status": "joined", "group_id": group_id}
