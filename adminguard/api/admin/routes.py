"""
Admin Routes

Thin HTTP layer over the privileged action executors. Each endpoint hands the
caller's token to the core and translates the tagged result into a response;
no authorization decisions are made here.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from adminguard.api.access.guard import AuthorizeOptions
from adminguard.api.admin.actions import (
    DeleteUserAction,
    ExportUserDataAction,
    ToggleUploadsAction,
    UpdateRoleAction,
)
from adminguard.api.admin.executor import ActionDependencies, RequestContext
from adminguard.api.admin.results import Err, ErrorKind, Result
from adminguard.api.admin.schemas import (
    ActionResponse,
    AuditListResponse,
    RoleUpdateRequest,
    SessionResponse,
    ToggleUploadsRequest,
    UserDetailResponse,
    UserListResponse,
)
from adminguard.api.admin.service import AuditTrailService, SessionService, UserBrowserService
from adminguard.api.dependencies import (
    get_action_dependencies,
    get_actor_token,
    get_request_context,
)


router = APIRouter()


ERROR_STATUS = {
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.EXTERNAL_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.AUDIT_WRITE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def unwrap(result: Result) -> dict:
    """Return the payload of an Ok result or raise the matching HTTP error."""
    if isinstance(result, Err):
        headers = None
        if result.kind == ErrorKind.UNAUTHENTICATED:
            headers = {"WWW-Authenticate": "Bearer"}
        raise HTTPException(
            status_code=ERROR_STATUS[result.kind],
            detail=result.message,
            headers=headers,
        )
    return result.data


# ==================== Session ====================


@router.get(
    "/session",
    response_model=SessionResponse,
    summary="Verify admin session",
)
async def get_session(
    allow_pending_mfa: bool = Query(False),
    allow_expired_password: bool = Query(False),
    token: str = Depends(get_actor_token),
    deps: ActionDependencies = Depends(get_action_dependencies),
) -> SessionResponse:
    """
    Verify the caller may use the admin portal.

    The override flags are meant for the MFA and password setup screens only.
    """
    options = AuthorizeOptions(
        allow_pending_mfa=allow_pending_mfa,
        allow_expired_credential=allow_expired_password,
    )
    data = unwrap(await SessionService(deps).verify_session(token, options))
    return SessionResponse(**data)


# ==================== User Browser ====================


@router.get(
    "/users",
    response_model=UserListResponse,
    summary="List or search users",
)
async def list_users(
    search: Optional[str] = Query(None, description="Exact user id or part of an email"),
    page: int = Query(1, ge=1),
    token: str = Depends(get_actor_token),
    deps: ActionDependencies = Depends(get_action_dependencies),
    request: RequestContext = Depends(get_request_context),
) -> UserListResponse:
    """Page through end users, newest first."""
    result = await UserBrowserService(deps).search_users(
        token, search=search, page=page, request=request
    )
    return UserListResponse(**unwrap(result))


@router.get(
    "/users/{user_id}",
    response_model=UserDetailResponse,
    summary="Get user details",
)
async def get_user(
    user_id: str,
    token: str = Depends(get_actor_token),
    deps: ActionDependencies = Depends(get_action_dependencies),
    request: RequestContext = Depends(get_request_context),
) -> UserDetailResponse:
    """Show one user's profile and recent analyses."""
    result = await UserBrowserService(deps).view_user(token, user_id, request=request)
    return UserDetailResponse(**unwrap(result))


# ==================== User Actions ====================


@router.delete(
    "/users/{user_id}",
    response_model=ActionResponse,
    summary="Delete user",
)
async def delete_user(
    user_id: str,
    token: str = Depends(get_actor_token),
    deps: ActionDependencies = Depends(get_action_dependencies),
    request: RequestContext = Depends(get_request_context),
) -> ActionResponse:
    """Delete a user account and all associated data."""
    result = await DeleteUserAction(deps).execute(token, user_id, request=request)
    return ActionResponse(data=unwrap(result))


@router.post(
    "/users/{user_id}/uploads",
    response_model=ActionResponse,
    summary="Enable or disable uploads",
)
async def toggle_uploads(
    user_id: str,
    data: ToggleUploadsRequest,
    token: str = Depends(get_actor_token),
    deps: ActionDependencies = Depends(get_action_dependencies),
    request: RequestContext = Depends(get_request_context),
) -> ActionResponse:
    """Toggle a user's ability to upload videos."""
    result = await ToggleUploadsAction(deps).execute(
        token, user_id, {"disable": data.disable}, request=request
    )
    return ActionResponse(data=unwrap(result))


@router.post(
    "/users/{user_id}/export",
    response_model=ActionResponse,
    summary="Export redacted user data",
)
async def export_user_data(
    user_id: str,
    token: str = Depends(get_actor_token),
    deps: ActionDependencies = Depends(get_action_dependencies),
    request: RequestContext = Depends(get_request_context),
) -> ActionResponse:
    """Export a redacted debug summary of a user's data."""
    result = await ExportUserDataAction(deps).execute(token, user_id, request=request)
    return ActionResponse(data=unwrap(result))


# ==================== Role Management ====================


@router.patch(
    "/roles/{principal_id}",
    response_model=ActionResponse,
    summary="Update admin role",
)
async def update_role(
    principal_id: str,
    data: RoleUpdateRequest,
    token: str = Depends(get_actor_token),
    deps: ActionDependencies = Depends(get_action_dependencies),
    request: RequestContext = Depends(get_request_context),
) -> ActionResponse:
    """Change another admin's role or active flag."""
    params = data.model_dump(exclude_none=True, mode="json")
    result = await UpdateRoleAction(deps).execute(token, principal_id, params, request=request)
    return ActionResponse(data=unwrap(result))


# ==================== Audit Log ====================


@router.get(
    "/audit",
    response_model=AuditListResponse,
    summary="List audit log entries",
)
async def list_audit_entries(
    action: Optional[str] = Query(None, description="Filter by action name"),
    actor: Optional[str] = Query(None, description="Filter by actor id"),
    page: int = Query(1, ge=1),
    token: str = Depends(get_actor_token),
    deps: ActionDependencies = Depends(get_action_dependencies),
) -> AuditListResponse:
    """Page through the audit trail, newest first."""
    result = await AuditTrailService(deps).list_entries(
        token, action=action, actor_id=actor, page=page
    )
    return AuditListResponse(**unwrap(result))
