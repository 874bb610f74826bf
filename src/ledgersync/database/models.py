"""SQLAlchemy models for ledgersync database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored by SQLite."""
    return datetime.now(UTC).replace(tzinfo=None)


class Rate(Base):
    """Hourly rate model."""

    __tablename__ = "rates"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    internal_only = Column(Boolean, default=False, nullable=False)


class Project(Base):
    """Project model."""

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    active_start = Column(DateTime, nullable=False)
    active_end = Column(DateTime, nullable=False)
    billing_frequency = Column(String, default="BILLING_TYPE_MONTHLY", nullable=False)
    internal = Column(Boolean, default=False, nullable=False)

    # Relationships
    billing_codes = relationship("BillingCode", back_populates="project", cascade="all, delete-orphan")
    invoices = relationship("Invoice", back_populates="project")


class BillingCode(Base):
    """Billing code model."""

    __tablename__ = "billing_codes"

    id = Column(Integer, primary_key=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    rate_id = Column(Integer, ForeignKey("rates.id"), nullable=False)
    internal_rate_id = Column(Integer, ForeignKey("rates.id"), nullable=True)
    rounded_to = Column(Integer, default=15, nullable=False)
    budget_period = Column(String, default="BUDGET_PERIOD_MONTHLY", nullable=False)
    budget_hours = Column(Numeric(10, 2), nullable=True)
    active_start = Column(DateTime, nullable=False)
    active_end = Column(DateTime, nullable=False)

    # Relationships
    project = relationship("Project", back_populates="billing_codes")
    entries = relationship("Entry", back_populates="billing_code")


class Invoice(Base):
    """Invoice model; period is [period_start, period_end)."""

    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    period_start = Column(DateTime, nullable=False)
    period_end = Column(DateTime, nullable=False)
    type = Column(String, nullable=False)
    state = Column(String, nullable=False)
    total_hours = Column(Numeric(12, 2), default=0, nullable=False)
    total_fees = Column(Numeric(12, 2), default=0, nullable=False)
    total_adjustments = Column(Numeric(12, 2), default=0, nullable=False)
    total_amount = Column(Numeric(12, 2), default=0, nullable=False)
    accepted_at = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    closed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    project = relationship("Project", back_populates="invoices")
    entries = relationship("Entry", back_populates="invoice")


class Bill(Base):
    """Payroll bill model; one open bill per employee at a time."""

    __tablename__ = "bills"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    employee_id = Column(Integer, nullable=False, index=True)
    period_start = Column(DateTime, nullable=False)
    period_end = Column(DateTime, nullable=False)
    state = Column(String, nullable=False)
    total_hours = Column(Numeric(12, 2), default=0, nullable=False)
    total_fees = Column(Numeric(12, 2), default=0, nullable=False)
    total_amount = Column(Numeric(12, 2), default=0, nullable=False)
    accepted_at = Column(DateTime, nullable=True)
    closed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    entries = relationship("Entry", back_populates="bill")


class Entry(Base):
    """Time entry model."""

    __tablename__ = "entries"

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    employee_id = Column(Integer, nullable=False)
    billing_code_id = Column(Integer, ForeignKey("billing_codes.id"), nullable=False)
    start = Column(DateTime, nullable=False)
    end = Column(DateTime, nullable=False)
    internal = Column(Boolean, default=False, nullable=False)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True)
    bill_id = Column(Integer, ForeignKey("bills.id"), nullable=True)
    staffing_assignment_id = Column(Integer, nullable=True)
    state = Column(String, nullable=False)
    duration_minutes = Column(Numeric(10, 2), default=0, nullable=False)
    fee = Column(Integer, default=0, nullable=False)
    notes = Column(String, nullable=True)

    # Relationships
    billing_code = relationship("BillingCode", back_populates="entries")
    invoice = relationship("Invoice", back_populates="entries")
    bill = relationship("Bill", back_populates="entries")


class Journal(Base):
    """Journal leg model. Amounts are integer cents."""

    __tablename__ = "journals"

    id = Column(Integer, primary_key=True)
    account = Column(String, nullable=False, index=True)
    sub_account = Column(String, default="", nullable=False)
    memo = Column(String, default="", nullable=False)
    debit = Column(Integer, default=0, nullable=False)
    credit = Column(Integer, default=0, nullable=False)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True)
    bill_id = Column(Integer, ForeignKey("bills.id"), nullable=True)
    recurring_bill_line_item_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)


class OfflineJournal(Base):
    """Ledger-sourced journal row awaiting review."""

    __tablename__ = "offline_journals"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False, index=True)
    account = Column(String, nullable=False, index=True)
    sub_account = Column(String, default="", nullable=False)
    description = Column(String, default="", nullable=False)
    debit = Column(Integer, default=0, nullable=False)
    credit = Column(Integer, default=0, nullable=False)
    content_hash = Column(String, unique=True, nullable=False)
    source = Column(String, default="beancount", nullable=False)
    status = Column(String, default="pending_review", nullable=False, index=True)
    imported_at = Column(DateTime, default=utcnow, nullable=False)
    reviewed_at = Column(DateTime, nullable=True)
    notes = Column(String, nullable=True)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
