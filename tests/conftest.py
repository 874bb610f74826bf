"""Shared pytest fixtures for ledgersync tests."""

import tempfile
import os
from datetime import datetime
from decimal import Decimal
from pathlib import Path
import pytest

from ledgersync.database.factories import create_sqlite_database
from ledgersync.domain.billing import BillingService
from ledgersync.domain.budget import BudgetService
from ledgersync.domain.offline_import import OfflineJournalService
from ledgersync.domain.reconciliation import ReconciliationService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def billing_service(temp_db):
    """Create a BillingService with a temporary database."""
    return BillingService(temp_db)


@pytest.fixture
def budget_service(temp_db):
    """Create a BudgetService with a temporary database."""
    return BudgetService(temp_db)


@pytest.fixture
def offline_journal_service(temp_db):
    """Create an OfflineJournalService with a temporary database."""
    return OfflineJournalService(temp_db)


@pytest.fixture
def reconciliation_service(temp_db):
    """Create a ReconciliationService with a temporary database."""
    return ReconciliationService(temp_db)


@pytest.fixture
def sample_rate(temp_db):
    """Create a $100/hour rate."""
    return temp_db.create_rate(name="Standard", amount=Decimal("100.00"))


@pytest.fixture
def sample_project(temp_db):
    """Create a monthly-billed project active for 2024."""
    project_id = temp_db.create_project(
        name="Acme Rollout",
        active_start=datetime(2024, 1, 1),
        active_end=datetime(2024, 12, 31, 23, 59, 59),
    )
    return temp_db.get_project(project_id)


@pytest.fixture
def sample_billing_code(temp_db, sample_project, sample_rate):
    """Create a billing code on the sample project, billed in 15 minute units."""
    billing_code_id = temp_db.create_billing_code(
        code="ACME-DEV",
        name="Development",
        project_id=sample_project.id,
        rate_id=sample_rate,
        active_start=sample_project.active_start,
        active_end=sample_project.active_end,
        rounded_to=15,
    )
    return temp_db.get_billing_code(billing_code_id)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
