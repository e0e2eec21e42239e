from __future__ import annotations

import logging
import os


def setup_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.INFO
    # Allow env override for e.g. serverless/cron runs
    level_name = os.getenv("CONCERTO_LINKS_LOG_LEVEL")
    if level_name:
        level = getattr(logging, level_name.upper(), level)

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    # urllib3 is chatty at DEBUG and drowns out provider logs
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
