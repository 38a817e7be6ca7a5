"""FastAPI application that exposes the local query API for the focus tracker."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from .categories import (
    AlreadyExistsError,
    CategoriesResponse,
    CategoryStoreError,
    UnknownCategoryError,
)
from .config import TrackerSettings
from .ledger import ActivityLedger
from .paths import get_data_dir
from .preferences import PreferencesError

logger = logging.getLogger(__name__)


class HistoryLoader:
    """Consolidate the day-log history in a background thread."""

    def __init__(self, ledger: ActivityLedger, join_timeout: float = 10.0) -> None:
        self._ledger = ledger
        self._join_timeout = join_timeout
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    def start(self) -> bool:
        """Start a loader thread; returns False while a previous one is still alive."""
        with self._lock:
            if self._thread and self._thread.is_alive():
                return False
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(self._ledger, stop_event),
                daemon=True,
            )
            self._thread = thread
            self._stop_event = stop_event
            thread.start()
            logger.info("History loader thread started.")
            return True

    def stop(self) -> None:
        """Signal the loader and wait for it; a thread that outlives the wait stays tracked."""
        with self._lock:
            thread = self._thread
            if not thread or not self._stop_event:
                return
            self._stop_event.set()
        thread.join(timeout=self._join_timeout)
        with self._lock:
            if thread.is_alive():
                logger.warning("History loader thread still running after stop request.")
                return
            if self._thread is thread:
                self._thread = None
                self._stop_event = None
        logger.info("History loader thread stopped.")

    def is_running(self) -> bool:
        with self._lock:
            return bool(self._thread and self._thread.is_alive())

    @staticmethod
    def _run(ledger: ActivityLedger, stop_event: threading.Event) -> None:
        try:
            ledger.load_history(stop_event=stop_event)
        except Exception:
            logger.exception("History loading failed.")


class AggregationPayload(BaseModel):
    groupers: Dict[str, Any]
    duration: int


class CreateCategoryPayload(BaseModel):
    name: str

    model_config = ConfigDict(extra="forbid")


class ReorderPayload(BaseModel):
    order: List[str]

    model_config = ConfigDict(extra="forbid")


class ItemCategoryPayload(BaseModel):
    identifier: str
    category: str = ""
    is_app: bool = False

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    data_dir: Optional[Path] = None,
    settings: Optional[TrackerSettings] = None,
    ledger: Optional[ActivityLedger] = None,
    load_history: bool = True,
) -> FastAPI:
    """Instantiate the FastAPI application.

    A prebuilt ``ledger`` takes precedence over ``data_dir``; history loading
    starts with the application when ``load_history`` is set.
    """
    resolved_settings = settings or TrackerSettings()
    if ledger is None:
        ledger = ActivityLedger.from_data_dir(
            Path(data_dir or get_data_dir()), settings=resolved_settings
        )
    loader = HistoryLoader(ledger)

    app = FastAPI(title="Focus Tracker", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.ledger = ledger
    app.state.history_loader = loader

    @app.on_event("startup")
    async def _startup() -> None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        if load_history:
            loader.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        loader.stop()

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        current: ActivityLedger = request.app.state.ledger
        return {
            "loading": request.app.state.history_loader.is_running(),
            "data_dir": str(current.data_dir) if current.data_dir else None,
            "days_loaded": len(current.arena.days()),
            "records": len(current.arena),
            "day_errors": {str(key): value for key, value in current.day_errors.items()},
            "gap_seconds": current.settings.gap_threshold.total_seconds(),
            "idle_grace_seconds": current.settings.idle_grace.total_seconds(),
            "url_truncation": current.normalizer.rules,
        }

    @app.get("/api/aggregations", response_model=List[AggregationPayload])
    def aggregations(
        request: Request,
        grouper: List[str] = Query(
            default=[],
            description="Dimension to group by; repeat to group by several.",
        ),
    ) -> List[Dict[str, Any]]:
        filters = {
            key: value
            for key, value in request.query_params.items()
            if key != "grouper"
        }
        try:
            results = request.app.state.ledger.get_aggregations(grouper, filters)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return [
            {"groupers": item.groupers, "duration": item.duration_seconds}
            for item in results
        ]

    @app.get("/api/categories", response_model=CategoriesResponse)
    def list_categories(request: Request) -> CategoriesResponse:
        return request.app.state.ledger.get_categories()

    @app.post("/api/categories", status_code=201, response_model=CategoriesResponse)
    def create_category(
        payload: CreateCategoryPayload, request: Request
    ) -> CategoriesResponse:
        current: ActivityLedger = request.app.state.ledger
        _apply(current.create_category, payload.name)
        return current.get_categories()

    @app.put("/api/categories/order", response_model=CategoriesResponse)
    def reorder_categories(payload: ReorderPayload, request: Request) -> CategoriesResponse:
        current: ActivityLedger = request.app.state.ledger
        _apply(current.reorder_categories, payload.order)
        return current.get_categories()

    @app.put("/api/categories/items", response_model=CategoriesResponse)
    def set_item_category(
        payload: ItemCategoryPayload, request: Request
    ) -> CategoriesResponse:
        current: ActivityLedger = request.app.state.ledger
        _apply(
            current.set_item_category,
            payload.identifier.strip(),
            payload.category.strip(),
            payload.is_app,
        )
        return current.get_categories()

    @app.post("/api/reload", status_code=202)
    def reload_history(request: Request) -> Dict[str, Any]:
        runner: HistoryLoader = request.app.state.history_loader
        runner.stop()
        if not runner.start():
            raise HTTPException(
                status_code=409, detail="previous history load is still stopping"
            )
        return {"loading": runner.is_running()}

    return app


def _apply(operation, *args: Any) -> None:
    try:
        operation(*args)
    except AlreadyExistsError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except UnknownCategoryError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except CategoryStoreError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except PreferencesError as exc:
        logger.exception("Failed to persist category change.")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
