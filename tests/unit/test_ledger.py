"""Тесты Ledger (финансовое состояние и атомарность).

Проверяет:
1. Каждое движение cash записывается ровно одной Transaction
2. Дебет без достаточного cash отклоняется без частичного списания
3. atomic(): откат всех изменений и записей при исключении
4. Вложенные atomic-блоки сливаются во внешний
5. Перемещение акций и инвариант total = Σ holdings + public
6. DependencyTimeout при недоступном per-corporation lock
"""

import threading

import pytest

from src.core.domain.corporation import ShareTrade
from src.core.domain.errors import (
    DependencyTimeout,
    InsufficientActions,
    InsufficientFunds,
    InsufficientHolding,
    InsufficientPublicFloat,
    ShareCountDrift,
    SimulationValidationError,
)
from src.core.domain.transaction import TransactionType
from src.ledger.ledger import Ledger, LedgerConfig


class TestUsers:
    """Тесты счетов пользователей."""

    def test_register_and_credit(self, world):
        ledger = world.ledger
        ledger.register_user(10, cash=100.0)
        tx = ledger.credit_user(10, 50.0, TransactionType.ADMIN_GRANT)
        assert ledger.user(10).cash == 150.0
        assert tx.to_user_id == 10
        assert tx.amount == 50.0

    def test_duplicate_registration_rejected(self, world):
        world.ledger.register_user(10)
        with pytest.raises(SimulationValidationError):
            world.ledger.register_user(10)

    def test_unknown_user(self, world):
        with pytest.raises(SimulationValidationError, match="Unknown user"):
            world.ledger.user(999)

    def test_charge_without_funds_rejected(self, world):
        ledger = world.ledger
        ledger.register_user(10, cash=100.0)
        with pytest.raises(InsufficientFunds):
            ledger.charge_user(10, 100.01, TransactionType.SHARE_PURCHASE)
        assert ledger.user(10).cash == 100.0
        assert ledger.transactions() == ()

    def test_actions(self, world):
        ledger = world.ledger
        ledger.register_user(10)
        ledger.grant_actions(10, 3)
        ledger.spend_actions(10, 2)
        assert ledger.user(10).actions == 1
        with pytest.raises(InsufficientActions):
            ledger.spend_actions(10, 2)
        assert ledger.user(10).actions == 1


class TestCorporationCash:
    """Тесты cash корпорации."""

    def test_credit_and_debit_emit_transactions(self, world):
        corp = world.add_corporation(cash=1000.0)
        ledger = world.ledger
        ledger.credit(corp.corporation_id, 500.0, TransactionType.MARKET_REVENUE)
        ledger.debit(corp.corporation_id, 200.0, TransactionType.MARKET_COST)

        assert ledger.corporation(corp.corporation_id).cash == 1300.0
        types = [t.transaction_type for t in ledger.transactions(corp.corporation_id)]
        assert types == [TransactionType.MARKET_REVENUE, TransactionType.MARKET_COST]

    def test_debit_exceeding_cash_rejected(self, world):
        corp = world.add_corporation(cash=1000.0)
        with pytest.raises(InsufficientFunds) as exc_info:
            world.ledger.debit(corp.corporation_id, 1000.01, TransactionType.MARKET_COST)
        assert exc_info.value.code == "insufficient_funds"
        assert world.ledger.corporation(corp.corporation_id).cash == 1000.0
        assert world.ledger.transactions(corp.corporation_id) == ()

    def test_debit_entire_cash_allowed(self, world):
        corp = world.add_corporation(cash=1000.0)
        world.ledger.debit(corp.corporation_id, 1000.0, TransactionType.MARKET_COST)
        assert world.ledger.corporation(corp.corporation_id).cash == 0.0

    def test_amounts_rounded_to_cents(self, world):
        corp = world.add_corporation(cash=0.0)
        tx = world.ledger.credit(corp.corporation_id, 10.005, TransactionType.MARKET_REVENUE)
        assert tx.amount == 10.01
        assert world.ledger.corporation(corp.corporation_id).cash == 10.01

    def test_pay_user(self, world):
        corp = world.add_corporation(ceo_id=1, cash=1000.0)
        tx = world.ledger.pay_user(corp.corporation_id, 1, 250.0, TransactionType.CEO_SALARY)
        assert world.ledger.corporation(corp.corporation_id).cash == 750.0
        assert world.ledger.user(1).cash == 250.0
        assert tx.corporation_id == corp.corporation_id
        assert tx.to_user_id == 1

    def test_negative_amount_rejected(self, world):
        corp = world.add_corporation()
        with pytest.raises(SimulationValidationError):
            world.ledger.credit(corp.corporation_id, -1.0, TransactionType.MARKET_REVENUE)

    def test_transaction_ids_monotonic(self, world):
        corp = world.add_corporation()
        for _ in range(3):
            world.ledger.credit(corp.corporation_id, 1.0, TransactionType.MARKET_REVENUE)
        ids = [t.transaction_id for t in world.ledger.transactions()]
        assert ids == sorted(ids)
        assert len(set(ids)) == 3


class TestAtomic:
    """Тесты atomic-блоков."""

    def test_rollback_on_exception(self, world):
        corp = world.add_corporation(ceo_id=1, cash=1000.0)
        cid = corp.corporation_id
        ledger = world.ledger

        with pytest.raises(RuntimeError):
            with ledger.atomic(cid):
                ledger.credit(cid, 500.0, TransactionType.MARKET_REVENUE)
                ledger.pay_user(cid, 1, 300.0, TransactionType.CEO_SALARY)
                ledger.transfer_shares(cid, None, 1, 10)
                raise RuntimeError("boom")

        assert ledger.corporation(cid).cash == 1000.0
        assert ledger.user(1).cash == 0.0
        assert ledger.holding(cid, 1) == 800_000
        assert ledger.corporation(cid).public_shares == 200_000
        assert ledger.transactions() == ()

    def test_transactions_published_on_commit(self, world):
        corp = world.add_corporation()
        cid = corp.corporation_id
        with world.ledger.atomic(cid):
            world.ledger.credit(cid, 1.0, TransactionType.MARKET_REVENUE)
            assert world.ledger.transactions() == ()
            assert world.ledger.in_atomic
        assert len(world.ledger.transactions()) == 1
        assert not world.ledger.in_atomic

    def test_inner_failure_keeps_outer_changes(self, world):
        corp = world.add_corporation(cash=1000.0)
        cid = corp.corporation_id
        ledger = world.ledger

        with ledger.atomic(cid):
            ledger.credit(cid, 100.0, TransactionType.MARKET_REVENUE)
            with pytest.raises(InsufficientFunds):
                with ledger.atomic(cid):
                    ledger.credit(cid, 50.0, TransactionType.MARKET_REVENUE)
                    ledger.debit(cid, 10_000.0, TransactionType.MARKET_COST)

        assert ledger.corporation(cid).cash == 1100.0
        assert [t.amount for t in ledger.transactions()] == [100.0]

    def test_outer_failure_rolls_back_committed_inner(self, world):
        corp = world.add_corporation(ceo_id=1, cash=1000.0)
        cid = corp.corporation_id
        ledger = world.ledger

        with pytest.raises(RuntimeError):
            with ledger.atomic(cid):
                with ledger.atomic(cid):
                    ledger.pay_user(cid, 1, 100.0, TransactionType.DIVIDEND)
                raise RuntimeError("boom")

        assert ledger.corporation(cid).cash == 1000.0
        assert ledger.user(1).cash == 0.0
        assert ledger.transactions() == ()

    def test_on_rollback_hook(self, world):
        corp = world.add_corporation()
        calls = []
        with pytest.raises(RuntimeError):
            with world.ledger.atomic(corp.corporation_id):
                world.ledger.on_rollback(lambda: calls.append("undone"))
                raise RuntimeError("boom")
        assert calls == ["undone"]

    def test_lock_timeout(self, clock):
        ledger = Ledger(LedgerConfig(lock_timeout_sec=0.05), clock=clock)
        acquired = threading.Event()
        release = threading.Event()

        def hold() -> None:
            with ledger.atomic(1):
                acquired.set()
                release.wait(5)

        worker = threading.Thread(target=hold)
        worker.start()
        try:
            assert acquired.wait(5)
            with pytest.raises(DependencyTimeout) as exc_info:
                with ledger.atomic(1):
                    pass
            assert exc_info.value.code == "dependency_timeout"
        finally:
            release.set()
            worker.join()

    def test_other_corporation_not_blocked(self, clock):
        ledger = Ledger(LedgerConfig(lock_timeout_sec=0.05), clock=clock)
        acquired = threading.Event()
        release = threading.Event()

        def hold() -> None:
            with ledger.atomic(1):
                acquired.set()
                release.wait(5)

        worker = threading.Thread(target=hold)
        worker.start()
        try:
            assert acquired.wait(5)
            with ledger.atomic(2):
                pass
        finally:
            release.set()
            worker.join()

    def test_failed_undo_step_does_not_stop_rollback(self, world):
        corp = world.add_corporation(cash=1000.0)
        cid = corp.corporation_id
        ledger = world.ledger

        def broken_undo() -> None:
            raise ValueError("undo failed")

        with pytest.raises(RuntimeError, match="original"):
            with ledger.atomic(cid):
                ledger.credit(cid, 500.0, TransactionType.MARKET_REVENUE)
                ledger.on_rollback(broken_undo)
                raise RuntimeError("original")

        assert ledger.corporation(cid).cash == 1000.0
        assert ledger.transactions() == ()

    def test_uncommitted_credit_not_spendable_from_other_thread(self, world):
        """Выплата в открытом блоке A не тратится покупкой в корпорации B."""
        corp_a = world.add_corporation(ceo_id=1, cash=1000.0)
        corp_b = world.add_corporation(ceo_id=2)
        ledger = world.ledger
        ledger.register_user(5)
        refused = []

        def spend() -> None:
            try:
                world.share_market.buy(corp_b.corporation_id, 5, 100)
            except InsufficientFunds as exc:
                refused.append(exc)

        with pytest.raises(RuntimeError):
            with ledger.atomic(corp_a.corporation_id):
                ledger.pay_user(corp_a.corporation_id, 5, 100.0, TransactionType.DIVIDEND)
                worker = threading.Thread(target=spend)
                worker.start()
                worker.join()
                raise RuntimeError("boom")

        assert len(refused) == 1
        assert ledger.corporation(corp_a.corporation_id).cash == 1000.0
        assert ledger.user(5).cash == 0.0
        assert ledger.holding(corp_b.corporation_id, 5) == 0

    def test_committed_credit_is_spendable(self, world):
        corp_a = world.add_corporation(ceo_id=1, cash=1000.0)
        corp_b = world.add_corporation(ceo_id=2)
        world.ledger.register_user(5)

        with world.ledger.atomic(corp_a.corporation_id):
            world.ledger.pay_user(corp_a.corporation_id, 5, 100.0, TransactionType.DIVIDEND)
            # Тот же поток может тратить собственное зачисление
            world.share_market.buy(corp_b.corporation_id, 5, 50)

        world.share_market.buy(corp_b.corporation_id, 5, 50)
        assert world.ledger.user(5).cash == 0.0
        assert world.ledger.holding(corp_b.corporation_id, 5) == 100


class TestShares:
    """Тесты позиций и инварианта акций."""

    def test_transfer_from_float(self, world):
        corp = world.add_corporation(ceo_id=1)
        world.ledger.register_user(2)
        world.ledger.transfer_shares(corp.corporation_id, None, 2, 1000)
        assert world.ledger.holding(corp.corporation_id, 2) == 1000
        assert world.ledger.corporation(corp.corporation_id).public_shares == 199_000
        world.ledger.check_share_integrity(corp.corporation_id)

    def test_transfer_exceeding_float(self, world):
        corp = world.add_corporation(public_shares=10)
        with pytest.raises(InsufficientPublicFloat):
            world.ledger.transfer_shares(corp.corporation_id, None, 1, 11)

    def test_transfer_exceeding_holding(self, world):
        corp = world.add_corporation(ceo_id=1)
        with pytest.raises(InsufficientHolding):
            world.ledger.transfer_shares(corp.corporation_id, 1, None, 800_001)

    def test_zero_holding_row_removed(self, world):
        corp = world.add_corporation(ceo_id=1, holdings={1: 700_000, 2: 100_000})
        world.ledger.transfer_shares(corp.corporation_id, 2, None, 100_000)
        assert world.ledger.shareholders(corp.corporation_id) == {1: 700_000}

    def test_same_party_transfer_rejected(self, world):
        corp = world.add_corporation(ceo_id=1)
        with pytest.raises(SimulationValidationError):
            world.ledger.transfer_shares(corp.corporation_id, 1, 1, 1)

    def test_drift_detected_not_corrected(self, world):
        corp = world.add_corporation()
        world.ledger.update_corporation(corp.corporation_id, total_shares=2_000_000)
        with pytest.raises(ShareCountDrift):
            world.ledger.check_share_integrity(corp.corporation_id)
        assert world.ledger.corporation(corp.corporation_id).total_shares == 2_000_000

    def test_add_corporation_with_drift_rejected(self, world):
        with pytest.raises(ShareCountDrift):
            world.add_corporation(holdings={1: 1})
        assert world.ledger.corporations() == ()

    def test_scale_shares_adjusts_trades(self, world):
        corp = world.add_corporation(ceo_id=1)
        cid = corp.corporation_id
        world.ledger.record_trade(
            ShareTrade(
                corporation_id=cid, user_id=1, side="buy", shares=100,
                price_per_share=2.0, ts_utc_ms=world.clock(),
            )
        )
        world.ledger.scale_shares(cid, 3)
        updated = world.ledger.corporation(cid)
        assert updated.total_shares == 3_000_000
        assert updated.public_shares == 600_000
        assert world.ledger.holding(cid, 1) == 2_400_000
        trade = world.ledger.trades(cid)[0]
        assert trade.shares == 300
        assert trade.price_per_share == pytest.approx(2.0 / 3)
        world.ledger.check_share_integrity(cid)


class TestHistory:
    """Тесты истории цен акций."""

    def test_record_share_price(self, world):
        corp = world.add_corporation()
        world.ledger.record_share_price(corp.corporation_id, 2.5, ts_utc_ms=123)
        assert world.ledger.corporation(corp.corporation_id).share_price == 2.5
        history = world.ledger.share_price_history(corp.corporation_id)
        assert [(s.price, s.ts_utc_ms) for s in history] == [(2.5, 123)]

    def test_non_positive_price_rejected(self, world):
        corp = world.add_corporation()
        with pytest.raises(SimulationValidationError):
            world.ledger.record_share_price(corp.corporation_id, 0.0)
