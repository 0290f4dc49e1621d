from __future__ import annotations

from datetime import datetime, date
from typing import Dict, List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator

OTHER_CATEGORY = "Other"
ALL = "all"

CATEGORY_PALETTE = ["#3B82F6", "#10B981", "#F59E0B", "#EF4444", "#8B5CF6"]


class DashboardError(Exception):
    pass


class RecordStoreError(DashboardError):
    pass


class UnsupportedFileError(DashboardError):
    pass


class InvoiceRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Opaque id assigned by the record store")
    user_id: str = Field(..., alias="userId", description="Owner")
    created_at: datetime = Field(..., alias="createdAt", description="Processing time")
    invoice_date: Optional[date] = Field(None, alias="invoiceDate", description="Date printed on the receipt")
    total_ttc: Optional[float] = Field(None, alias="totalTTC", ge=0, description="Total incl. tax")
    total_ht: Optional[float] = Field(None, alias="totalHT", ge=0, description="Total excl. tax")
    tax: Optional[float] = Field(None, ge=0)
    category: str = Field(OTHER_CATEGORY)
    supplier: Optional[str] = None
    description: Optional[str] = None
    quantity: Optional[float] = None
    unit_price: Optional[float] = Field(None, alias="unitPrice")
    total: Optional[float] = Field(None, description="Line item total")
    image_url: Optional[str] = Field(None, alias="imageURL")
    payment_method: Optional[str] = Field(None, alias="paymentMethod")

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, value):
        if value is None or not str(value).strip():
            return OTHER_CATEGORY
        return str(value).strip()

    @property
    def amount(self) -> float:
        return self.total_ttc or 0.0


class InvoiceCreate(InvoiceRecord):
    """Write payload; the store assigns id and processing time when absent."""

    id: Optional[str] = None
    created_at: Optional[datetime] = Field(None, alias="createdAt")


class DerivedStatistics(BaseModel):
    total_today: float = 0.0
    total_this_month: float = 0.0
    average_daily: float = 0.0
    count_today: int = 0
    count_this_month: int = 0
    days_in_month: int


class DailyPoint(BaseModel):
    day: date
    label: str = Field(..., description="DD/MM")
    amount: float


class CategoryPoint(BaseModel):
    name: str
    amount: float
    color: str


class WeekPoint(BaseModel):
    label: str = Field(..., description="S1..S7")
    amount: float


class ChartSeries(BaseModel):
    daily_totals: List[DailyPoint] = Field(default_factory=list)
    category_totals: List[CategoryPoint] = Field(default_factory=list)
    weekly_trend: List[WeekPoint] = Field(default_factory=list)


class FilterCriteria(BaseModel):
    search_text: str = ""
    category: str = ALL
    date: str = Field(ALL, description="'all' or DD/MM/YYYY")


class GalleryView(BaseModel):
    status: Literal["no_data", "no_match", "ok"]
    groups: Dict[str, List[InvoiceRecord]] = Field(default_factory=dict)
    count: int = 0
    categories: List[str] = Field(default_factory=list)
    dates: List[str] = Field(default_factory=list)


ExportPeriod = Literal["today", "thisWeek", "thisMonth"]
ExportFormat = Literal["excel", "pdf", "zip"]


class ExportPreview(BaseModel):
    period: ExportPeriod
    label: str
    count: int
    total_amount: float
    suppliers: List[str] = Field(default_factory=list)
    filename: Optional[str] = None


class UploadResult(BaseModel):
    file_name: str
    status: Literal["success", "error"]
    detail: Optional[str] = None
