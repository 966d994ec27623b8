"""
Shared fixtures.

Every time-dependent call gets an explicit `today`, so nothing here depends
on the real date.
"""

import pytest
from datetime import date
from decimal import Decimal

from src.audit import AuditLogger
from src.lifecycle import ObligationService
from src.models.finance import (
    Account,
    AccountType,
    ScheduledTransaction,
    Transaction,
    TransactionType,
)
from src.services.storage import (
    InMemoryAuditStorage,
    InMemoryObligationStorage,
    InMemoryTransactionStorage,
)


TODAY = date(2024, 3, 10)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def account():
    return Account(
        id="acc-main",
        name="HDFC Savings",
        type=AccountType.BANK,
        balance=Decimal("1000.00"),
    )


@pytest.fixture
def make_obligation():
    def _make(**overrides):
        fields = {
            "amount": Decimal("100.00"),
            "merchant": "Landlord",
            "account_id": "acc-main",
            "due_date": TODAY,
        }
        fields.update(overrides)
        return ScheduledTransaction(**fields)
    return _make


@pytest.fixture
def make_transaction():
    def _make(**overrides):
        fields = {
            "amount": Decimal("100.00"),
            "type": TransactionType.EXPENSE,
            "date": TODAY,
            "merchant": "Landlord",
            "account_id": "acc-main",
        }
        fields.update(overrides)
        return Transaction(**fields)
    return _make


@pytest.fixture
def obligation_storage():
    return InMemoryObligationStorage()


@pytest.fixture
def transaction_storage():
    return InMemoryTransactionStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def service(obligation_storage, audit_logger):
    return ObligationService(obligation_storage, audit_logger=audit_logger)
