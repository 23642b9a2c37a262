from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

import uvicorn

from sss_admin_core.app import create_app
from sss_admin_core.config import load_admin_config
from sss_admin_core.home import ensure_admin_layout, resolve_admin_home


def main() -> None:
    home = resolve_admin_home()
    paths = ensure_admin_layout(home)

    config = load_admin_config(paths)

    # Configure logging
    log_file = paths.logs_dir / "admin.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            RotatingFileHandler(
                log_file,
                maxBytes=config.logging.max_size_mb * 1024 * 1024,
                backupCount=config.logging.backup_count,
            ),
            logging.StreamHandler(),
        ],
    )

    # SSS_ADMIN_BIND / SSS_ADMIN_PORT are folded into config.network by load_admin_config.
    uvicorn.run(create_app(), host=config.network.bind_host, port=config.network.port)


if __name__ == "__main__":
    main()
