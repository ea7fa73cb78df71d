"""Run the update server with uvicorn: ``python -m ota_api``."""

from __future__ import annotations

import os

import uvicorn

from ota_api.logging_utils import build_log_config, level_from_env


def main() -> None:
    level = level_from_env()
    uvicorn.run(
        "ota_api.app:app",
        host=os.getenv("OTA_HOST", "0.0.0.0"),
        port=int(os.getenv("OTA_PORT", "3000")),
        log_config=build_log_config(level),
    )


if __name__ == "__main__":
    main()
