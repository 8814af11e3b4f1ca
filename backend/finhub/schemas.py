from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CsvRowOut(BaseModel):
    id: int
    source: str
    external_id: str
    file_name: Optional[str] = None
    date: Optional[dt.date] = None
    description: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    reconciled: bool = False
    custom_data: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class CsvRowIn(BaseModel):
    """
    An already-normalized row posted to ``POST /api/csv-rows``.

    ``reconciled`` is not accepted: a re-post keeps whatever reconciliation
    state the stored row already has. Lengths match the csv_rows columns.
    """

    external_id: str = Field(min_length=1, max_length=1024)
    date: Optional[dt.date] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    amount: Optional[float] = Field(default=None, allow_inf_nan=False)
    currency: Optional[str] = Field(default=None, pattern=r"^[A-Z]{3}$")
    customer_email: Optional[str] = Field(default=None, max_length=320)
    customer_name: Optional[str] = Field(default=None, max_length=500)
    file_name: Optional[str] = Field(default=None, max_length=500)
    custom_data: Dict[str, Any] = Field(default_factory=dict)


class CsvRowsUpsert(BaseModel):
    source: str = Field(min_length=1, max_length=100)
    rows: List[CsvRowIn]


class ArInvoiceOut(BaseModel):
    id: int
    invoice_number: str
    order_id: Optional[str] = None
    order_date: Optional[dt.date] = None
    order_status: Optional[str] = None
    deal_status: Optional[str] = None
    invoice_date: Optional[dt.date] = None
    products: Optional[str] = None
    company_name: Optional[str] = None
    client_name: Optional[str] = None
    email: Optional[str] = None
    total_amount: Optional[float] = None
    currency: Optional[str] = None
    charged_amount: Optional[float] = None
    payment_method: Optional[str] = None
    billing_entity: Optional[str] = None
    discount_code: Optional[str] = None
    status: Optional[str] = None  # paid, partial, pending, cancelled
    due_date: Optional[dt.date] = None
    payment_date: Optional[dt.date] = None
    country_code: Optional[str] = None
    scope: str
    source: str
    source_id: Optional[str] = None
    source_data: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        from_attributes = True


class WsUserOut(BaseModel):
    id: str
    email: str
    name: str
    avatar_url: Optional[str] = None
    role: str
    is_active: bool

    class Config:
        from_attributes = True


class WsTaskOut(BaseModel):
    id: int
    project_id: str
    section_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    assignee_id: Optional[str] = None
    due_date: Optional[dt.date] = None
    completed_at: Optional[dt.datetime] = None
    position: int = 0
    tags: List[str] = Field(default_factory=list)
    created_by: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class WsActivityOut(BaseModel):
    id: int
    task_id: Optional[int] = None
    project_id: Optional[str] = None
    user_id: Optional[str] = None
    user_email: Optional[str] = None  # joined from ws_users
    action: str
    field_name: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class WsCommentOut(BaseModel):
    id: int
    task_id: int
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    content: str
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True
