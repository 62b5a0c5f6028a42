"""Uvicorn server runner."""

import copy

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from sessionguard.app import App
from sessionguard.config import Config
from sessionguard.web.server import create_fastapi_app


def run_server(app: App, config: Config) -> None:
    """Serve the API behind the identity gateway."""
    fastapi_app = create_fastapi_app(app, config)

    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config["formatters"]["access"]["fmt"] = '%(asctime)s - %(client_addr)s - "%(request_line)s" %(status_code)s'
    log_config["formatters"]["default"]["fmt"] = "%(asctime)s - %(levelname)s - %(message)s"

    uvicorn.run(
        fastapi_app,
        host=config.host,
        port=config.port,
        log_config=log_config,
        access_log=True,
        # Identity headers are only trusted from the gateway, so is its X-Forwarded-For
        proxy_headers=True,
        forwarded_allow_ips=config.forwarded_allow_ips,
    )
