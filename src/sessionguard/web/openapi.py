from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field

# Endpoints that authenticate with the gateway identity headers instead of a session token
IDENTITY_ENDPOINTS = {
    ("POST", "/api/v1/sessions"),
    ("GET", "/api/v1/devices"),
    ("DELETE", "/api/v1/devices/{device_id}"),
}

# Endpoints that need no credentials at all
PUBLIC_ENDPOINTS = {
    ("POST", "/api/v1/session/close"),
    ("GET", "/health"),
}


def set_custom_openapi(app: FastAPI) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="SessionGuard API",
            version="0.1.0",
            summary="Single active session enforcement for student accounts",
            routes=app.routes,
        )

        config = app.state.config
        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "description": "Session token (preferred)",
            },
            "SessionTokenCookie": {
                "type": "apiKey",
                "in": "cookie",
                "name": "session_token",
                "description": "Session token stored in cookie",
            },
            "GatewayIdentity": {
                "type": "apiKey",
                "in": "header",
                "name": config.identity_header,
                "description": "User id asserted by the upstream identity gateway",
            },
        }

        openapi_schema["security"] = [
            {"BearerAuth": []},
            {"SessionTokenCookie": []},
        ]

        for path, path_item in openapi_schema["paths"].items():
            for method, operation in path_item.items():
                key = (method.upper(), path)
                if key in PUBLIC_ENDPOINTS:
                    operation["security"] = []
                elif key in IDENTITY_ENDPOINTS:
                    operation["security"] = [{"GatewayIdentity": []}]

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "Missing session token", "type": "authentication_error"},
                {"message": "Session not found", "type": "not_found"},
                {"message": "Could not start a session. Please retry sign-in.", "type": "session_creation_failed"},
            ]
        }
    }
