from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str  # must point at a replica set, login runs in a transaction
    host: str = "127.0.0.1"
    port: int = 3100
    debug: bool = False
    cors_origins: list[str] = []
    enforced_roles: list[str] = ["student"]  # roles limited to one active session
    identity_header: str = "X-User-Id"  # set by the upstream identity gateway
    role_header: str = "X-User-Role"
    forwarded_allow_ips: str = "127.0.0.1"  # address of the identity gateway
    poll_interval_seconds: float = 30.0  # advertised to clients in the login response
    ended_session_retention_days: int = 30
    # Build metadata injected during Docker build via environment variables
    git_commit_hash: str = "unknown"
    git_commit_date: str = "unknown"
    build_time: str = "unknown"

    model_config = {
        "env_file": [".env"],
        "env_prefix": "SESSIONGUARD_",
        "extra": "ignore",
    }
