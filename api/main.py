from __future__ import annotations

from dataclasses import asdict
import logging
import math
import threading
from functools import lru_cache
from itertools import islice

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from fastapi.encoders import jsonable_encoder

from api.schemas import FilterCriteriaModel, OptionsResponse, StatusResponse
from streamdash.controller import DashboardController, DashboardState
from streamdash.data import iter_records, load_dashboard_data
from streamdash.errors import UnknownViewError
from streamdash.filters import normalize_criteria


app = FastAPI(title="Streaming Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:8501"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Views and criteria live on one controller; requests must not interleave.
_lock = threading.Lock()


@lru_cache(maxsize=1)
def get_controller() -> DashboardController:
    controller = DashboardController(loader=load_dashboard_data)
    controller.start()
    return controller


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        ),
    )


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _unavailable(controller: DashboardController) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"error": controller.error or "dashboard unavailable", "type": "DataUnavailableError", "state": controller.state.value},
    )


def _apply(controller: DashboardController, filters: FilterCriteriaModel) -> None:
    controller.poll()
    controller.on_criteria_changed(normalize_criteria(filters.model_dump()))


@app.get("/status", response_model=StatusResponse)
def status():
    try:
        controller = get_controller()
        return StatusResponse(
            state=controller.state.value,
            source=controller.source,
            error=controller.error,
            record_count=len(controller.records),
            views=controller.views.names(),
        )
    except Exception as exc:
        logger.exception("status failed")
        return _error(exc)


@app.get("/meta/options", response_model=OptionsResponse)
def meta_options():
    try:
        controller = get_controller()
        if controller.state == DashboardState.ERROR:
            return _unavailable(controller)
        return OptionsResponse(**controller.options())
    except Exception as exc:
        logger.exception("meta_options failed")
        return _error(exc)


@app.post("/dashboard")
def dashboard(filters: FilterCriteriaModel):
    try:
        controller = get_controller()
        if controller.state == DashboardState.ERROR:
            return _unavailable(controller)
        with _lock:
            _apply(controller, filters)
            return _json(controller.snapshot())
    except Exception as exc:
        logger.exception("dashboard failed")
        return _error(exc)


@app.post("/reset")
def reset():
    try:
        controller = get_controller()
        if controller.state == DashboardState.ERROR:
            return _unavailable(controller)
        with _lock:
            controller.reset_filters()
            return _json(controller.snapshot())
    except Exception as exc:
        logger.exception("reset failed")
        return _error(exc)


@app.post("/views/{name}")
def view(name: str, filters: FilterCriteriaModel):
    try:
        controller = get_controller()
        if controller.state == DashboardState.ERROR:
            return _unavailable(controller)
        with _lock:
            handle = controller.views.get(name)
            _apply(controller, filters)
            return _json(
                {
                    "name": name,
                    "criteria": asdict(controller.criteria),
                    "rows": handle.result.to_dict(orient="records"),
                    "spec": handle.sink.spec,
                }
            )
    except UnknownViewError as exc:
        return _error(exc, status_code=404)
    except Exception as exc:
        logger.exception("view failed")
        return _error(exc)


@app.post("/tracks")
def tracks(filters: FilterCriteriaModel, limit: int = 500):
    try:
        controller = get_controller()
        if controller.state == DashboardState.ERROR:
            return _unavailable(controller)
        with _lock:
            _apply(controller, filters)
            filtered = controller.filtered
        rows = [asdict(r) for r in islice(iter_records(filtered), max(0, limit))]
        return _json({"total": int(len(filtered)), "tracks": rows})
    except Exception as exc:
        logger.exception("tracks failed")
        return _error(exc)


@app.post("/export")
def export(filters: FilterCriteriaModel):
    controller = get_controller()
    if controller.state == DashboardState.ERROR:
        return _unavailable(controller)
    with _lock:
        _apply(controller, filters)
        export_df = controller.filtered
    csv_bytes = export_df.to_csv(index=False, date_format="%Y-%m-%d").encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": "attachment; filename=tracks.csv"})


@app.post("/resize")
def resize(width: int, height: int):
    try:
        controller = get_controller()
        if controller.state == DashboardState.ERROR:
            return _unavailable(controller)
        with _lock:
            controller.request_resize(width, height)
            applied = controller.poll()
        return _json({"pending": not applied, "width": width, "height": height})
    except Exception as exc:
        logger.exception("resize failed")
        return _error(exc)
