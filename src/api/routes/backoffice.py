"""Public backoffice invite routes used by the invite acceptance page."""

from fastapi import APIRouter

from src.api.deps import DbSession
from src.schemas.backoffice import (
    InviteAcceptRequest,
    InviteAcceptResponse,
    InviteTokenRequest,
    InviteValidationResponse,
)
from src.services.invite_service import InviteService

router = APIRouter(prefix="/backoffice/invite", tags=["backoffice"])


@router.post(
    "/validate",
    response_model=InviteValidationResponse,
    response_model_by_alias=True,
    summary="Validate invite token",
    description="Reports whether an invite token can still be accepted.",
)
async def validate_invite(data: InviteTokenRequest, db: DbSession) -> InviteValidationResponse:
    return await InviteService(db).validate_invite_token(data.token)


@router.post(
    "/accept",
    response_model=InviteAcceptResponse,
    response_model_by_alias=True,
    summary="Accept invite",
    description="Accepts an invite, sets the invitee's password and grants the invited role.",
)
async def accept_invite(data: InviteAcceptRequest, db: DbSession) -> InviteAcceptResponse:
    """Redeem an invite token.

    Raises:
        InviteTokenError: Token is unknown, expired, or no longer pending.
    """
    accepted = await InviteService(db).accept_invite(data.token, data.name, data.password)
    return InviteAcceptResponse(ok=True, email=accepted.email, role=accepted.role)
