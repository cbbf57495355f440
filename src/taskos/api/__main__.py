# src/taskos/api/__main__.py
from __future__ import annotations

import uvicorn

from taskos.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so TASKOS_* vars exist before the config is read.
    load_dotenv_if_present()

    from taskos.api.app import create_app
    from taskos.config import load_config
    from taskos.util.log_events import configure_structured_logging

    cfg = load_config()
    configure_structured_logging(cfg.log_level)

    uvicorn.run(create_app(config=cfg), host=cfg.api_host, port=cfg.api_port, log_level="info")


if __name__ == "__main__":
    main()
