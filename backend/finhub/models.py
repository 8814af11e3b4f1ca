from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from finhub.db import Base


class CsvRow(Base):
    __tablename__ = "csv_rows"
    __table_args__ = (
        # Business key per source so re-imports of the same file upsert instead of duplicating.
        UniqueConstraint("source", "external_id", name="uq_csv_rows_source_external_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source: Mapped[str] = mapped_column(String(100), index=True)
    external_id: Mapped[str] = mapped_column(String(1024))
    file_name: Mapped[str | None] = mapped_column(String(500), nullable=True)

    date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    amount: Mapped[Numeric | None] = mapped_column(Numeric(18, 2), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(320), nullable=True, index=True)
    customer_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    reconciled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Source-specific columns; shape differs per source.
    custom_data: Mapped[dict] = mapped_column(JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
    )


class ArInvoice(Base):
    __tablename__ = "ar_invoices"
    __table_args__ = (UniqueConstraint("invoice_number", "scope", name="uq_ar_invoices_number_scope"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_number: Mapped[str] = mapped_column(String(200))
    order_id: Mapped[str | None] = mapped_column(String(200), nullable=True, index=True)
    order_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    order_status: Mapped[str | None] = mapped_column(String(100), nullable=True)
    deal_status: Mapped[str | None] = mapped_column(String(100), nullable=True)
    invoice_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    products: Mapped[str | None] = mapped_column(Text, nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    client_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    total_amount: Mapped[Numeric | None] = mapped_column(Numeric(18, 2), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    charged_amount: Mapped[Numeric | None] = mapped_column(Numeric(18, 2), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(100), nullable=True)
    billing_entity: Mapped[str | None] = mapped_column(String(200), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    discount_code: Mapped[str | None] = mapped_column(String(200), nullable=True)
    status: Mapped[str | None] = mapped_column(String(50), nullable=True)  # paid, partial, pending, cancelled
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    country_code: Mapped[str | None] = mapped_column(String(2), nullable=True)
    scope: Mapped[str] = mapped_column(String(10), default="ES")
    source: Mapped[str] = mapped_column(String(100), index=True)
    source_id: Mapped[str | None] = mapped_column(String(200), nullable=True)
    source_data: Mapped[dict] = mapped_column(JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
    )


class WebOrder(Base):
    """Storefront orders. Created by migrate_web_orders.py, not by init_db.py."""

    __tablename__ = "web_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_reference: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    customer_full_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    total_paid: Mapped[Numeric | None] = mapped_column(Numeric(18, 2), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    date_ordered: Mapped[date | None] = mapped_column(Date, nullable=True)
    products: Mapped[list] = mapped_column(JSON, default=list)
    braintree_tx_ids: Mapped[list] = mapped_column(JSON, default=list)
    source: Mapped[str] = mapped_column(String(100), default="craft-commerce")


class SyncMetadata(Base):
    __tablename__ = "sync_metadata"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    last_api_sync: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_full_sync: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_csv_upload: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_record_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_records: Mapped[int] = mapped_column(Integer, default=0)
    records_added_last_sync: Mapped[int] = mapped_column(Integer, default=0)
    last_sync_status: Mapped[str | None] = mapped_column(String(20), nullable=True)  # success, error, in_progress
    last_sync_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    sync_config: Mapped[dict] = mapped_column(JSON, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
    )


# ---------------------------------------------------------------------------
# Workstream (read-only from this service)
# ---------------------------------------------------------------------------


class WsUser(Base):
    __tablename__ = "ws_users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(200))
    avatar_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    role: Mapped[str] = mapped_column(String(50), default="member")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class WsTask(Base):
    __tablename__ = "ws_tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[str] = mapped_column(String(64), index=True)
    section_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    title: Mapped[str] = mapped_column(String(500))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="todo")  # todo, in_progress, review, done, blocked
    priority: Mapped[str] = mapped_column(String(20), default="medium")
    assignee_id: Mapped[str | None] = mapped_column(ForeignKey("ws_users.id", ondelete="SET NULL"), nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    custom_data: Mapped[dict] = mapped_column(JSON, default=dict)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
    )


class WsActivity(Base):
    """Append-only task event log."""

    __tablename__ = "ws_activity_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[int | None] = mapped_column(ForeignKey("ws_tasks.id", ondelete="CASCADE"), nullable=True, index=True)
    project_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_id: Mapped[str | None] = mapped_column(ForeignKey("ws_users.id", ondelete="SET NULL"), nullable=True)
    action: Mapped[str] = mapped_column(String(100))
    field_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class WsComment(Base):
    __tablename__ = "ws_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(ForeignKey("ws_tasks.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str | None] = mapped_column(ForeignKey("ws_users.id", ondelete="SET NULL"), nullable=True)
    content: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


# Tables created by init_db.py. web_orders is left to its own migration.
CORE_TABLES = [
    CsvRow.__table__,
    ArInvoice.__table__,
    SyncMetadata.__table__,
    WsUser.__table__,
    WsTask.__table__,
    WsActivity.__table__,
    WsComment.__table__,
]
