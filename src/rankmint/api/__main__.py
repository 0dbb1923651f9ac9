# src/rankmint/api/__main__.py
from __future__ import annotations

import uvicorn

from rankmint.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so RANKMINT_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (prevents "config read before env" surprises)
    from rankmint.api.app import create_app
    from rankmint.api.structured_logging import configure_structured_logging
    from rankmint.runtime.config import load_config

    cfg = load_config()
    configure_structured_logging(cfg.log_level)

    uvicorn.run(create_app(), host=cfg.api_host, port=int(cfg.api_port), log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
