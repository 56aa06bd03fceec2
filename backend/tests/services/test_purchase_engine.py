"""Purchase Engine — atomic debit/record/grant, declines without side effects.

Invariants:
    - Success: balance debited once, one completed purchase row, one ownership row
    - Any decline or failure leaves the balance and ownership exactly as before
    - Internal failures leave a failed audit transaction and a generic decline
    - A cancelled caller does not abort a purchase already in flight
"""

import asyncio

import pytest
from sqlalchemy.exc import IntegrityError

from credit_ledger.core.domain_types import (
    AccountContext, DeclineReason, ItemId, PurchaseStage, TransactionStatus,
)
from credit_ledger.core.errors import ItemUnavailableError
from credit_ledger.models.item import Item
from credit_ledger.services import purchase_engine as engine_module
from credit_ledger.services.ownership_registry import OwnershipRegistry
from credit_ledger.services.transaction_log import TransactionLog


def _ctx(account) -> AccountContext:
    return AccountContext(account_id=account.id, session_id="test")


async def test_purchase_debits_records_and_grants(purchase_engine, alice, ledger_state):
    result = await purchase_engine.purchase(_ctx(alice), ItemId(1))

    assert result.committed
    assert result.remaining_credits == 60
    state = await ledger_state(alice.id)
    assert state["balance"] == 60
    assert state["owned"] == {1}
    [txn] = state["transactions"]
    assert txn.kind == "purchase"
    assert txn.status == "completed"
    assert txn.amount == 40
    assert txn.id == result.transaction_id


async def test_insufficient_funds_declines_without_mutation(
    purchase_engine, catalog, make_account, ledger_state,
):
    poor = await make_account(balance=10)

    result = await purchase_engine.purchase(_ctx(poor), ItemId(1))

    assert result.decline == DeclineReason.INSUFFICIENT_FUNDS
    assert (result.required, result.available) == (40, 10)
    state = await ledger_state(poor.id)
    assert state == {"balance": 10, "owned": set(), "transactions": []}


async def test_second_purchase_is_already_owned(purchase_engine, alice, ledger_state):
    await purchase_engine.purchase(_ctx(alice), ItemId(1))

    result = await purchase_engine.purchase(_ctx(alice), ItemId(1))

    assert result.decline == DeclineReason.ALREADY_OWNED
    state = await ledger_state(alice.id)
    assert state["balance"] == 60
    assert len(state["transactions"]) == 1


async def test_unknown_and_unpublished_items_are_unavailable(
    purchase_engine, alice, ledger_state,
):
    missing = await purchase_engine.purchase(_ctx(alice), ItemId(999))
    draft = await purchase_engine.purchase(_ctx(alice), ItemId(5))

    assert missing.decline == DeclineReason.ITEM_UNAVAILABLE
    assert draft.decline == DeclineReason.ITEM_UNAVAILABLE
    assert (await ledger_state(alice.id))["balance"] == 100


async def test_free_item_is_unavailable(purchase_engine, alice, test_db):
    test_db.add(Item(id=50, title="Freebie", price=0, published=True))
    await test_db.commit()

    result = await purchase_engine.purchase(_ctx(alice), ItemId(50))

    assert result.decline == DeclineReason.ITEM_UNAVAILABLE


async def test_failure_while_recording_compensates(
    purchase_engine, alice, ledger_state, monkeypatch,
):
    original = TransactionLog.append_purchase

    async def flaky_append(self, account_id, item_id, price,
                           status=TransactionStatus.COMPLETED, failure_note=None):
        if status == TransactionStatus.COMPLETED:
            raise RuntimeError("disk full")
        return await original(self, account_id, item_id, price,
                              status=status, failure_note=failure_note)

    monkeypatch.setattr(TransactionLog, "append_purchase", flaky_append)

    result = await purchase_engine.purchase(_ctx(alice), ItemId(1))

    assert result.decline == DeclineReason.INTERNAL_ERROR
    assert result.stage == PurchaseStage.RECORDING
    state = await ledger_state(alice.id)
    assert state["balance"] == 100
    assert state["owned"] == set()
    [audit] = state["transactions"]
    assert audit.status == "failed"
    assert audit.failure_note.startswith("recording: RuntimeError")


async def test_failure_while_granting_compensates(
    purchase_engine, alice, ledger_state, monkeypatch,
):
    async def broken_grant(self, account_id, item_id, transaction_id):
        raise RuntimeError("grant store offline")

    monkeypatch.setattr(OwnershipRegistry, "grant", broken_grant)

    result = await purchase_engine.purchase(_ctx(alice), ItemId(1))

    assert result.decline == DeclineReason.INTERNAL_ERROR
    assert result.stage == PurchaseStage.GRANTING
    state = await ledger_state(alice.id)
    assert state["balance"] == 100
    assert state["owned"] == set()
    assert [t.status for t in state["transactions"]] == ["failed"]


async def test_unique_violation_at_grant_reports_already_owned(
    purchase_engine, alice, ledger_state, monkeypatch,
):
    async def duplicate_grant(self, account_id, item_id, transaction_id):
        raise IntegrityError("INSERT INTO ownerships", {}, Exception("duplicate"))

    monkeypatch.setattr(OwnershipRegistry, "grant", duplicate_grant)

    result = await purchase_engine.purchase(_ctx(alice), ItemId(1))

    assert result.decline == DeclineReason.ALREADY_OWNED
    state = await ledger_state(alice.id)
    assert state["balance"] == 100
    assert state["transactions"] == []


async def test_concurrent_purchases_never_overdraw(purchase_engine, alice, ledger_state):
    # 100 credits; items 1, 3 and 2 cost 40, 50 and 30
    results = await asyncio.gather(
        purchase_engine.purchase(_ctx(alice), ItemId(1)),
        purchase_engine.purchase(_ctx(alice), ItemId(3)),
        purchase_engine.purchase(_ctx(alice), ItemId(2)),
    )

    committed = [r for r in results if r.committed]
    declined = [r for r in results if not r.committed]
    assert len(committed) == 2
    assert [r.decline for r in declined] == [DeclineReason.INSUFFICIENT_FUNDS]
    state = await ledger_state(alice.id)
    assert state["balance"] == 100 - 40 - 50
    assert state["balance"] >= 0
    assert len(state["owned"]) == 2


async def test_concurrent_duplicate_purchase_charges_once(
    purchase_engine, alice, ledger_state,
):
    results = await asyncio.gather(
        purchase_engine.purchase(_ctx(alice), ItemId(1)),
        purchase_engine.purchase(_ctx(alice), ItemId(1)),
    )

    assert sorted(r.committed for r in results) == [False, True]
    state = await ledger_state(alice.id)
    assert state["balance"] == 60
    assert state["owned"] == {1}


async def test_cancelled_caller_still_commits(purchase_engine, alice, ledger_state):
    caller = asyncio.create_task(purchase_engine.purchase(_ctx(alice), ItemId(1)))
    await asyncio.sleep(0)
    caller.cancel()

    with pytest.raises(asyncio.CancelledError):
        await caller
    await asyncio.gather(*list(engine_module._inflight))

    state = await ledger_state(alice.id)
    assert state["balance"] == 60
    assert state["owned"] == {1}


async def test_eligibility_preview(purchase_engine, alice):
    summary = await purchase_engine.check_eligibility(_ctx(alice), ItemId(4))

    assert summary == {
        "can_purchase": True,
        "already_owned": False,
        "price": 60,
        "user_credits": 100,
        "sufficient_credits": True,
    }


async def test_eligibility_for_unpublished_item_raises(purchase_engine, alice):
    with pytest.raises(ItemUnavailableError):
        await purchase_engine.check_eligibility(_ctx(alice), ItemId(5))


async def test_eligibility_for_free_item_raises(purchase_engine, alice, test_db):
    test_db.add(Item(id=51, title="Freebie", price=0, published=True))
    await test_db.commit()

    with pytest.raises(ItemUnavailableError):
        await purchase_engine.check_eligibility(_ctx(alice), ItemId(51))


async def test_eligibility_for_owned_item_still_previews(purchase_engine, alice):
    await purchase_engine.purchase(_ctx(alice), ItemId(1))

    summary = await purchase_engine.check_eligibility(_ctx(alice), ItemId(1))

    assert summary["already_owned"] is True
    assert summary["can_purchase"] is False
