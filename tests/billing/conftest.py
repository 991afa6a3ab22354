from __future__ import annotations

import pytest

from tests.billing.billing_fakes import BillingStore


@pytest.fixture
def store(monkeypatch) -> BillingStore:
    billing_store = BillingStore()
    billing_store.install(monkeypatch)
    return billing_store
