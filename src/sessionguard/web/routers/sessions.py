from typing import Annotated

import pydantic
from fastapi import APIRouter, Cookie, Request, Response
from pydantic import BaseModel, Field

from sessionguard.core.modules.device.fingerprint import ClientSignals
from sessionguard.core.modules.session.models import LoginResult, SessionStatus, SessionToken
from sessionguard.errors import ValidationError
from sessionguard.web.deps import AppDep, IdentityDep, SessionTokenDep
from sessionguard.web.openapi import ErrorResponse

router = APIRouter(tags=["sessions"])

SESSION_COOKIE = "session_token"


class LoginRequest(BaseModel):
    """Session start request, sent right after the identity provider signed the user in."""

    signals: ClientSignals = Field(default_factory=ClientSignals, description="Client environment signals")


class CloseSessionRequest(BaseModel):
    """Tab teardown notice."""

    session_token: str = Field(..., min_length=1, description="Token of the closing tab")


@router.post(
    "/sessions",
    summary="Start session",
    description="Register the client device and start a session. For enforced accounts every other session "
    "of the user ends with reason 'new_login'.",
    operation_id="startSession",
    status_code=201,
    responses={
        201: {"description": "Session started"},
        401: {"model": ErrorResponse, "description": "No identity from the gateway"},
        503: {"model": ErrorResponse, "description": "Session could not be created, retry sign-in"},
    },
)
async def start_session(login_data: LoginRequest, app: AppDep, identity: IdentityDep, response: Response) -> LoginResult:
    result = await app.login(identity, login_data.signals)

    # Set cookie for browser-based clients
    response.set_cookie(
        key=SESSION_COOKIE,
        value=result.session_token,
        httponly=True,
        samesite="lax",
        secure=False,  # Set to True in production with HTTPS
    )
    return result


@router.get(
    "/session/status",
    summary="Get session status",
    description="Liveness poll: whether the session is still the active one and, if not, why it ended.",
    operation_id="getSessionStatus",
    responses={
        200: {"description": "Current session status"},
        401: {"model": ErrorResponse, "description": "No session token"},
        404: {"model": ErrorResponse, "description": "Unknown session token"},
    },
)
async def get_session_status(app: AppDep, session_token: SessionTokenDep) -> SessionStatus:
    return await app.get_session_status(session_token)


@router.post(
    "/session/logout",
    summary="End session",
    description="End the current session with reason 'logout'.",
    operation_id="logout",
    status_code=204,
    responses={
        204: {"description": "Successfully logged out"},
        401: {"model": ErrorResponse, "description": "No or unknown session token"},
    },
)
async def logout(app: AppDep, session_token: SessionTokenDep, response: Response) -> None:
    await app.logout(session_token)
    response.delete_cookie(SESSION_COOKIE)


@router.post(
    "/session/close",
    summary="Close session (best effort)",
    description="Sent by a closing tab with the token in a JSON body of any content type, so page beacons work. "
    "Always succeeds, unknown or already ended sessions are ignored.",
    operation_id="closeSession",
    status_code=204,
    responses={
        204: {"description": "Accepted"},
        400: {"model": ErrorResponse, "description": "No session token given"},
    },
)
async def close_session(
    request: Request, app: AppDep, token_cookie: Annotated[str | None, Cookie(alias=SESSION_COOKIE)] = None
) -> None:
    body = await request.body()
    token = token_cookie
    if body:
        try:
            token = CloseSessionRequest.model_validate_json(body).session_token
        except pydantic.ValidationError as e:
            raise ValidationError("Invalid close request") from e
    if not token:
        raise ValidationError("Missing session token")
    await app.close_session(SessionToken(token))
