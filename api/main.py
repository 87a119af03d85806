from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, File, Query, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import FilterSpecModel, LoadResponse, LoadTextRequest, MetaListResponse, ParseWarningModel, ReferenceQueryModel
from core.data import MAX_PARSE_WARNINGS, RecordSet, describe_error, load_reference_dim, panel_options
from core.errors import EmptyResultError, FatalParseError, LargeInputWarning, SourceUnavailableError
from core.filters import FilterSpec, normalize_filters
from core.logging_config import setup_logging
from core.metrics_debug import compute_debug
from core.metrics_overview import compute_overview
from core.metrics_records import compute_records
from core.metrics_reference import compute_reference
from core.session import DashboardSession
from core.sources import UploadedTextSource


setup_logging()
app = FastAPI(title="Lab Records API", version="0.1.0")
logger = logging.getLogger(__name__)
session = DashboardSession()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:8501"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_ERROR_STATUS = [
    (LargeInputWarning, 409),
    (FatalParseError, 422),
    (EmptyResultError, 422),
    (SourceUnavailableError, 502),
]


def _filters_from_model(model: Optional[FilterSpecModel]) -> FilterSpec:
    return normalize_filters(model.model_dump() if model is not None else None)


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
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception, where: str) -> JSONResponse:
    for exc_type, status in _ERROR_STATUS:
        if isinstance(exc, exc_type):
            logger.warning("%s: %s", where, exc)
            content = describe_error(exc)
            if isinstance(exc, LargeInputWarning):
                content["size_bytes"] = exc.size_bytes
            return JSONResponse(status_code=status, content=content)
    logger.exception("%s failed", where)
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def _load_response(record_set: RecordSet) -> LoadResponse:
    return LoadResponse(
        source=record_set.source_name,
        records=len(record_set),
        fields=list(record_set.fields),
        parse_warnings=[ParseWarningModel(**e.as_dict()) for e in record_set.parse_errors[:MAX_PARSE_WARNINGS]],
        parse_warning_count=len(record_set.parse_errors),
    )


@app.get("/health")
def health():
    return {"status": "ok", "records": len(session.record_set)}


@app.post("/load/text")
def load_text(body: LoadTextRequest):
    try:
        source = UploadedTextSource(body.filename, body.text.encode("utf-8"))
        record_set = session.load(source, confirm_large=body.confirm_large, has_header=body.has_header)
        return _json(_load_response(record_set).model_dump())
    except Exception as exc:
        return _error(exc, "load_text")


@app.post("/load/upload")
async def load_upload(file: UploadFile = File(...), confirm_large: bool = Query(default=False)):
    try:
        data = await file.read()
        record_set = session.load(UploadedTextSource(file.filename or "uploaded file", data), confirm_large=confirm_large)
        return _json(_load_response(record_set).model_dump())
    except Exception as exc:
        return _error(exc, "load_upload")


@app.post("/load/demo")
def load_demo():
    try:
        return _json(_load_response(session.load_demo()).model_dump())
    except Exception as exc:
        return _error(exc, "load_demo")


@app.delete("/records")
def clear_records():
    session.clear()
    return {"records": 0}


@app.get("/meta/providers")
def meta_providers():
    try:
        return _json(MetaListResponse(values=session.context()["provider_options"]).model_dump())
    except Exception as exc:
        return _error(exc, "meta_providers")


@app.get("/meta/years")
def meta_years():
    try:
        return _json(MetaListResponse(values=session.context()["year_options"]).model_dump())
    except Exception as exc:
        return _error(exc, "meta_years")


@app.get("/meta/panels")
def meta_panels():
    try:
        return _json(MetaListResponse(values=panel_options(load_reference_dim())).model_dump())
    except Exception as exc:
        return _error(exc, "meta_panels")


@app.post("/overview")
def overview(filters: FilterSpecModel, top_n: int = Query(default=10, ge=1, le=100)):
    try:
        f = session.set_filters(_filters_from_model(filters))
        ctx = session.context(f)
        return _json(compute_overview(f, ctx, top_n=top_n))
    except Exception as exc:
        return _error(exc, "overview")


@app.post("/records")
def records(filters: FilterSpecModel, limit: Optional[int] = Query(default=None, ge=0)):
    try:
        f = session.set_filters(_filters_from_model(filters))
        ctx = session.context(f)
        return _json(compute_records(f, ctx, limit=limit))
    except Exception as exc:
        return _error(exc, "records")


@app.post("/reference")
def reference(query: ReferenceQueryModel):
    try:
        return _json(compute_reference(query.search_term, query.panel))
    except Exception as exc:
        return _error(exc, "reference")


@app.post("/debug")
def debug(filters: FilterSpecModel):
    try:
        f = _filters_from_model(filters)
        return _json(compute_debug(f, session.context(f)))
    except Exception as exc:
        return _error(exc, "debug")


@app.post("/export")
def export_records(filters: FilterSpecModel):
    f = _filters_from_model(filters)
    export_df = session.context(f).get("filtered_records")
    if export_df is None or not hasattr(export_df, "to_csv"):
        export_df = pd.DataFrame()
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": "attachment; filename=lab_records.csv"})
