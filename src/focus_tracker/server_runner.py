"""Helpers to launch the local query server."""

from __future__ import annotations

import logging
import threading
import time
import webbrowser
from pathlib import Path
from typing import Optional

import uvicorn

from .config import TrackerSettings
from .paths import get_data_dir
from .webapp import create_app

logger = logging.getLogger(__name__)


def run_dashboard(
    *,
    host: str = "127.0.0.1",
    port: int = 8765,
    data_dir: Optional[Path] = None,
    settings: Optional[TrackerSettings] = None,
    open_browser: bool = False,
    log_level: str = "info",
) -> None:
    """Serve the query API over ``data_dir``, loading its history in the background.

    With ``open_browser`` the interactive API docs open once the server has
    had a moment to bind.
    """
    resolved_dir = Path(data_dir or get_data_dir())
    resolved_settings = settings or TrackerSettings()
    app = create_app(data_dir=resolved_dir, settings=resolved_settings)

    base_url = f"http://{host}:{port}"
    logger.info(
        "Serving day logs from %s at %s (history since %s).",
        resolved_dir,
        base_url,
        resolved_settings.history_start,
    )
    if open_browser:
        threading.Thread(
            target=_launch_browser_after_delay, args=(f"{base_url}/docs",), daemon=True
        ).start()

    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(app, host=host, port=port, log_level=log_level)


def _launch_browser_after_delay(url: str) -> None:
    time.sleep(1.0)
    try:
        webbrowser.open(url)
    except Exception:
        logger.exception("Failed to launch browser for %s", url)
