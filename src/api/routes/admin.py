"""Backoffice administration routes: invites, backoffice users and orders."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from src.api.deps import DbSession, StaffAccess, SuperadminAccess
from src.models import OrderStatus
from src.schemas.backoffice import (
    BackofficeUserListResponse,
    BackofficeUserResponse,
    InviteCreateRequest,
    InviteEnvelope,
    InviteListResponse,
    InviteResponse,
    InviteRevokeRequest,
)
from src.schemas.order import (
    AdminOrderListItem,
    AdminOrderListResponse,
    AdminOrderResponse,
    OrderStatusUpdateRequest,
)
from src.services.admin_order_service import MAX_PAGE_SIZE, AdminOrderService
from src.services.backoffice_service import BackofficeService
from src.services.invite_service import InviteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# Backoffice invites (superadmin)


@router.get(
    "/backoffice/invites",
    response_model=InviteListResponse,
    response_model_by_alias=True,
    summary="List backoffice invites",
)
async def list_invites(access: SuperadminAccess, db: DbSession) -> InviteListResponse:
    """List every invite, newest first. Lapsed pending invites are expired first."""
    invites = await InviteService(db).list_invites()
    return InviteListResponse(invites=[InviteResponse.model_validate(invite) for invite in invites])


@router.post(
    "/backoffice/invites",
    response_model=InviteEnvelope,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
    summary="Invite a backoffice user",
    description="Creates an invite for an admin or staff member and emails the acceptance link.",
)
async def create_invite(
    data: InviteCreateRequest,
    access: SuperadminAccess,
    db: DbSession,
) -> InviteEnvelope:
    """Create and send an invite.

    Raises:
        DuplicatePendingInvite: A usable invite already exists for the email.
        EmailDeliveryNotConfigured: Email sending is not configured.
    """
    created = await InviteService(db).create_invite(
        email=data.email,
        role=data.role,
        actor_user_profile_id=access.user_profile_id,
        actor_email=access.email,
    )
    invite = InviteResponse.model_validate(created.invite)
    invite.invited_by_email = access.email
    return InviteEnvelope(invite=invite)


@router.post(
    "/backoffice/invites/revoke",
    response_model=InviteEnvelope,
    response_model_by_alias=True,
    summary="Revoke a backoffice invite",
)
async def revoke_invite(
    data: InviteRevokeRequest,
    access: SuperadminAccess,
    db: DbSession,
) -> InviteEnvelope:
    """Revoke a pending invite.

    Raises:
        InviteNotPendingOrMissing: No pending invite has this id.
    """
    invite = await InviteService(db).revoke_invite(data.id, access.user_profile_id)
    logger.info("Invite %s revoked by %s", invite.id, access.user_profile_id)
    return InviteEnvelope(invite=InviteResponse.model_validate(invite))


@router.get(
    "/backoffice/users",
    response_model=BackofficeUserListResponse,
    response_model_by_alias=True,
    summary="List backoffice users",
)
async def list_backoffice_users(access: SuperadminAccess, db: DbSession) -> BackofficeUserListResponse:
    users = await BackofficeService(db).list_backoffice_users()
    return BackofficeUserListResponse(users=[BackofficeUserResponse.model_validate(user) for user in users])


# Orders (staff and above)


@router.get(
    "/orders",
    response_model=AdminOrderListResponse,
    response_model_by_alias=True,
    summary="List orders",
    description="Paginated order listing with optional search over code, email and phone.",
)
async def list_orders(
    access: StaffAccess,
    db: DbSession,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(alias="pageSize", ge=1, le=MAX_PAGE_SIZE)] = 20,
    q: Annotated[str | None, Query(max_length=200)] = None,
    order_status: Annotated[OrderStatus | None, Query(alias="status")] = None,
) -> AdminOrderListResponse:
    rows, pagination = await AdminOrderService(db).list_orders(
        page=page,
        page_size=page_size,
        q=q,
        status=order_status,
    )
    return AdminOrderListResponse(
        items=[AdminOrderListItem.model_validate(row) for row in rows],
        pagination=pagination,
    )


@router.patch(
    "/orders/{order_id}",
    response_model=AdminOrderResponse,
    response_model_by_alias=True,
    summary="Update order status",
    description="Moves an order along the fulfillment flow. Invalid transitions are rejected.",
)
async def update_order_status(
    order_id: UUID,
    data: OrderStatusUpdateRequest,
    access: StaffAccess,
    db: DbSession,
) -> AdminOrderResponse:
    """Change an order's status.

    Raises:
        NotFoundError: Order does not exist.
        InvalidStatusTransition: Target is not reachable from the current status.
    """
    order = await AdminOrderService(db).update_order_status(order_id, data.status, access.user_profile_id)
    return AdminOrderResponse.model_validate(order)
