from typing import Annotated, cast

from fastapi import Depends, Request
from fastapi.security import APIKeyCookie, HTTPAuthorizationCredentials, HTTPBearer

from sessionguard.app import App
from sessionguard.config import Config
from sessionguard.core.modules.identity.models import Identity
from sessionguard.core.modules.session.models import SessionToken
from sessionguard.errors import AuthenticationError

# Security schemes
bearer_scheme = HTTPBearer(auto_error=False)
cookie_scheme = APIKeyCookie(name="session_token", auto_error=False)


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


async def get_config(request: Request) -> Config:
    return cast(Config, request.app.state.config)


async def get_identity(request: Request, config: Annotated[Config, Depends(get_config)]) -> Identity:
    """Read the caller identity asserted by the upstream identity gateway."""
    user_id = request.headers.get(config.identity_header)
    if not user_id:
        raise AuthenticationError("Missing identity")
    return Identity(user_id=user_id, role=request.headers.get(config.role_header))


async def get_session_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)] = None,
    token_cookie: Annotated[str | None, Depends(cookie_scheme)] = None,
) -> SessionToken:
    """Get the session token from the Authorization Bearer header or cookie.

    The token is not checked for being active here, status polls must see ended sessions too.
    """
    if credentials and credentials.scheme.lower() == "bearer" and credentials.credentials:
        return SessionToken(credentials.credentials)
    if token_cookie:
        return SessionToken(token_cookie)
    raise AuthenticationError("Missing session token")


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
IdentityDep = Annotated[Identity, Depends(get_identity)]
SessionTokenDep = Annotated[SessionToken, Depends(get_session_token)]
