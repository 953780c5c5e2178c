"""SQLAlchemy ORM models"""

from sqlalchemy import JSON, BigInteger, Column, Date, DateTime, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class BillingSummaryRow(Base):
    """Monthly card bill, written by the aggregation side and read here"""

    __tablename__ = "billing_summary"

    id = Column(Text, primary_key=True)
    card_id = Column(Text, nullable=False, index=True)
    card_name = Column(Text, nullable=False)
    billing_month = Column(Text, nullable=False)
    closing_date = Column(Date, nullable=False)
    payment_date = Column(Date, nullable=False)
    net_payment_amount = Column(BigInteger, nullable=False)
    transaction_ids = Column(JSON, nullable=False, default=list)

    __table_args__ = (UniqueConstraint("card_id", "billing_month", name="uq_billing_summary_card_month"),)


class PaymentStatusRecordRow(Base):
    """Append-only payment status change"""

    __tablename__ = "payment_status_record"

    id = Column(Text, primary_key=True)
    card_summary_id = Column(Text, nullable=False)
    status = Column(Text, nullable=False)
    previous_status = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    updated_by = Column(Text, nullable=False)
    reason = Column(Text, nullable=True)
    reconciliation_id = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_payment_status_summary_updated", "card_summary_id", "updated_at"),)


class ReconciliationRow(Base):
    """Reconciliation run, one per card and billing month"""

    __tablename__ = "reconciliation"

    id = Column(Text, primary_key=True)
    card_id = Column(Text, nullable=False)
    billing_month = Column(Text, nullable=False)
    status = Column(Text, nullable=False)
    executed_at = Column(DateTime(timezone=True), nullable=False)
    results = Column(JSON, nullable=False)
    summary_total = Column(Integer, nullable=False)
    summary_matched = Column(Integer, nullable=False)
    summary_unmatched = Column(Integer, nullable=False)
    summary_partial = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (UniqueConstraint("card_id", "billing_month", name="uq_reconciliation_card_month"),)
