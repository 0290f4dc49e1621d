from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, File, HTTPException, Query, UploadFile

from analytics import compute_series, compute_statistics
from exporter import export_preview
from filters import filter_and_group
from record_store import InMemoryRecordStore
from schemas import (
    ChartSeries,
    DerivedStatistics,
    ExportFormat,
    ExportPeriod,
    ExportPreview,
    FilterCriteria,
    GalleryView,
    InvoiceCreate,
    InvoiceRecord,
    UnsupportedFileError,
    UploadResult,
)
from uploader import WebhookUploader

app = FastAPI(title="Invoice Dashboard API")

STORE = InMemoryRecordStore()
UPLOADER = WebhookUploader()


@app.post("/api/invoices", response_model=InvoiceRecord)
def create_invoice(payload: InvoiceCreate):
    data = payload.model_dump()
    data["id"] = payload.id or str(uuid.uuid4())
    data["created_at"] = payload.created_at or datetime.now()
    return STORE.insert(InvoiceRecord(**data))


@app.get("/api/invoices", response_model=List[InvoiceRecord])
def list_invoices(owner_id: str = Query(...)):
    return STORE.query(owner_id)


@app.get("/api/invoices/stats", response_model=DerivedStatistics)
def get_stats(owner_id: str = Query(...)):
    return compute_statistics(STORE.query(owner_id))


@app.get("/api/invoices/series", response_model=ChartSeries)
def get_series(owner_id: str = Query(...)):
    return compute_series(STORE.query(owner_id))


@app.get("/api/invoices/gallery", response_model=GalleryView)
def get_gallery(
    owner_id: str = Query(...),
    search: str = Query(""),
    category: str = Query("all"),
    date: str = Query("all"),
):
    criteria = FilterCriteria(search_text=search, category=category, date=date)
    return filter_and_group(STORE.query(owner_id), criteria)


@app.get("/api/export/preview", response_model=ExportPreview)
def get_export_preview(
    owner_id: str = Query(...),
    period: ExportPeriod = Query("today"),
    format: Optional[ExportFormat] = Query(None),
):
    return export_preview(STORE.query(owner_id), period, format)


@app.post("/api/uploads", response_model=UploadResult)
def upload_invoice(file: UploadFile = File(...)):
    content = file.file.read()
    try:
        return UPLOADER.send(file.filename, len(content), file.content_type)
    except UnsupportedFileError as e:
        raise HTTPException(status_code=415, detail=str(e))
