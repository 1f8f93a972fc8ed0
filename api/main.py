from __future__ import annotations

import logging
import math
from functools import lru_cache

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import FilterStateModel, RefreshResponse, TargetHistoryResponse, ViewRequestModel
from utilization.config import settings
from utilization.export import export_csv
from utilization.filters import FilterState, normalize_filters
from utilization.state import UtilizationDashboard
from utilization.views import VIEWS, compute_view, filter_options


app = FastAPI(title="Utilization Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_dashboard() -> UtilizationDashboard:
    dashboard = UtilizationDashboard.from_settings(settings)
    dashboard.refresh()
    return dashboard


def _filters_from_model(model: FilterStateModel) -> FilterState:
    return normalize_filters(model.model_dump())


def _json(data: object) -> JSONResponse:
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
        )
    )


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/meta/filters")
def meta_filters(department: str = "all"):
    try:
        dashboard = get_dashboard()
        return _json(filter_options(dashboard.state.records, normalize_filters({"department": department})))
    except Exception as exc:
        logger.exception("meta_filters failed")
        return _error(exc)


@app.post("/view/{view}")
def view(view: str, request: ViewRequestModel):
    if view not in VIEWS:
        return _error(ValueError(f"Unknown view {view!r}; expected one of {VIEWS}"), status_code=400)
    try:
        dashboard = get_dashboard()
        f = _filters_from_model(request.filters)
        compare = (request.period1, request.period2) if request.period1 and request.period2 else None
        payload = compute_view(
            dashboard.state.records,
            f,
            dashboard.resolver,
            view,
            show_target=request.show_target,
            compare=compare,
            trend_single_person=dashboard.trend_single_person,
        )
        return _json(payload)
    except ValueError as exc:
        logger.warning("view %s rejected: %s", view, exc)
        return _error(exc, status_code=400)
    except Exception as exc:
        logger.exception("view %s failed", view)
        return _error(exc)


@app.get("/targets/{name}")
def target_history(name: str):
    try:
        dashboard = get_dashboard()
        return _json(TargetHistoryResponse(name=name.strip(), history=dashboard.target_history(name)).model_dump())
    except Exception as exc:
        logger.exception("target_history failed")
        return _error(exc)


@app.post("/refresh")
def refresh():
    try:
        dashboard = get_dashboard()
        loaded = dashboard.refresh()
        return _json(
            RefreshResponse(
                loaded=loaded,
                records=len(dashboard.state.records),
                people_with_targets=len(dashboard.state.targets),
            ).model_dump()
        )
    except Exception as exc:
        logger.exception("refresh failed")
        return _error(exc)


@app.post("/export/csv")
def export(filters: FilterStateModel):
    dashboard = get_dashboard()
    f = _filters_from_model(filters)
    csv_bytes = export_csv(dashboard.state.records, f, dashboard.resolver)
    return Response(
        content=csv_bytes,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=utilization.csv"},
    )
