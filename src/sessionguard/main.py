"""Application entry point for the SessionGuard server."""

from sessionguard.app import App
from sessionguard.config import Config
from sessionguard.logging import setup_logging
from sessionguard.web.runner import run_server


def main() -> None:
    config = Config()  # type: ignore[call-arg]
    setup_logging(config.debug)
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
