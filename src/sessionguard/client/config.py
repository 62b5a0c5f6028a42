from pydantic_settings import BaseSettings


class ClientConfig(BaseSettings):
    """Client configuration loaded from environment variables."""

    base_url: str = "http://127.0.0.1:3100"
    poll_interval_seconds: float | None = None  # overrides the interval advertised by the server
    timeout_seconds: float = 5.0  # httpx default
    locale: str = "en"

    model_config = {
        "env_file": [".env"],
        "env_prefix": "SESSIONGUARD_CLIENT_",
        "extra": "ignore",
    }
