"""Тесты TurnProcessor (обработка хода).

Проверяет:
1. Начисление action points (бонус CEO), один раз за period
2. Net-начисление экономики entries одной проводкой
3. Отклонение net cost сверх cash (insolvent), cash никогда не уходит в минус
4. Зарплата CEO: период выплаты, обнуление без частичной выплаты
5. Дивиденд из положительного operating income
6. Идемпотентность повторного хода
7. Изоляция ошибки одной корпорации, IntegrityError прерывает ход
8. Буст прибыли от corporate actions
"""

import pytest

from src.core.contracts import validate_turn_result
from src.core.domain.corporation import CorporateActionType
from src.core.domain.errors import ShareCountDrift
from src.core.domain.transaction import TransactionType
from src.economy.market_pricer import MS_PER_HOUR
from src.turn.processor import TurnConfig, TurnProcessor


class TestActions:
    """Тесты action points."""

    def test_actions_with_ceo_bonus(self, world):
        world.add_corporation(ceo_id=1, ceo_salary=0.0)
        world.ledger.register_user(2)

        result = world.processor.run_turn(1, world.clock())

        assert result.actions_granted == 5
        assert result.ceos_count == 1
        assert world.ledger.user(1).actions == 3
        assert world.ledger.user(2).actions == 2

    def test_actions_granted_once_per_period(self, world):
        world.ledger.register_user(2)
        world.processor.run_turn(1, world.clock())
        result = world.processor.run_turn(1, world.clock())
        assert result.actions_granted == 0
        assert world.ledger.user(2).actions == 2


class TestAccrual:
    """Тесты начисления экономики."""

    def test_net_revenue_credited(self, world):
        """Light Industry × 2 в CA: (1500 − 1325) × 2 = 350 за час."""
        corp = world.add_corporation(ceo_id=1, ceo_salary=0.0)
        world.add_entry(corp.corporation_id, "Light Industry", "CA", {"production": 2})

        result = world.processor.run_turn(1, world.clock())

        assert result.corporations_processed == 1
        assert result.total_profit == pytest.approx(350.0)
        assert world.ledger.corporation(corp.corporation_id).cash == pytest.approx(1_000_350.0)
        revenue = [
            t
            for t in world.ledger.transactions(corp.corporation_id)
            if t.transaction_type == TransactionType.MARKET_REVENUE
        ]
        assert len(revenue) == 1
        assert revenue[0].amount == pytest.approx(350.0)

    def test_net_cost_debited(self, world):
        """Mining в WY: 240 − 1075 = −835 за час."""
        corp = world.add_corporation(ceo_id=1, ceo_salary=0.0, cash=10_000.0)
        world.add_entry(corp.corporation_id, "Mining", "WY", {"extraction": 1})

        result = world.processor.run_turn(1, world.clock())

        assert result.total_profit == pytest.approx(-835.0)
        assert world.ledger.corporation(corp.corporation_id).cash == pytest.approx(9_165.0)
        assert result.insolvent_corporations == []

    def test_insolvent_net_cost_rejected(self, world):
        corp = world.add_corporation(ceo_id=1, ceo_salary=0.0, cash=100.0)
        world.add_entry(corp.corporation_id, "Mining", "WY", {"extraction": 1})

        result = world.processor.run_turn(1, world.clock())

        assert result.insolvent_corporations == [corp.corporation_id]
        assert result.total_profit == 0.0
        assert result.corporations_processed == 1
        updated = world.ledger.corporation(corp.corporation_id)
        assert updated.cash == 100.0
        assert updated.last_processed_period == 1

    def test_corporate_action_boosts_revenue(self, world):
        """350 × (1 + 0.10) = 385 при активном Supply Rush."""
        corp = world.add_corporation(ceo_id=1, ceo_salary=0.0, cash=2_000_000.0)
        cid = corp.corporation_id
        world.add_entry(cid, "Light Industry", "CA", {"production": 2})
        now = world.clock()
        world.lifecycle.activate_corporate_action(cid, 1, CorporateActionType.SUPPLY_RUSH, now)
        cash_before = world.ledger.corporation(cid).cash

        result = world.processor.run_turn(1, now)

        assert result.total_profit == pytest.approx(385.0)
        assert world.ledger.corporation(cid).cash == pytest.approx(cash_before + 385.0)
        (revenue,) = [
            t
            for t in world.ledger.transactions(cid)
            if t.transaction_type == TransactionType.MARKET_REVENUE
        ]
        assert revenue.description == "Net market revenue (Supply Rush +10%)"

    def test_expired_corporate_action_ignored(self, world):
        corp = world.add_corporation(ceo_id=1, ceo_salary=0.0, cash=2_000_000.0)
        cid = corp.corporation_id
        world.add_entry(cid, "Light Industry", "CA", {"production": 2})
        now = world.clock()
        world.lifecycle.activate_corporate_action(cid, 1, CorporateActionType.SUPPLY_RUSH, now)

        result = world.processor.run_turn(1, now + 4 * MS_PER_HOUR)

        assert result.total_profit == pytest.approx(350.0)

    def test_corporate_action_does_not_boost_loss(self, world):
        """Mining в WY: −835 остаётся −835."""
        corp = world.add_corporation(ceo_id=1, ceo_salary=0.0, cash=2_000_000.0)
        cid = corp.corporation_id
        world.add_entry(cid, "Mining", "WY", {"extraction": 1})
        now = world.clock()
        world.lifecycle.activate_corporate_action(
            cid, 1, CorporateActionType.MARKETING_CAMPAIGN, now
        )

        result = world.processor.run_turn(1, now)

        assert result.total_profit == pytest.approx(-835.0)


class TestSalary:
    """Тесты зарплаты CEO."""

    def test_salary_paid(self, world):
        corp = world.add_corporation(ceo_id=1)
        now = world.clock()

        result = world.processor.run_turn(1, now)

        assert result.ceos_paid == 1
        assert result.total_paid == 100_000.0
        assert world.ledger.user(1).cash == 100_000.0
        updated = world.ledger.corporation(corp.corporation_id)
        assert updated.cash == 900_000.0
        assert updated.last_salary_paid_ts_utc_ms == now

    def test_salary_period(self, world):
        world.add_corporation(ceo_id=1)
        now = world.clock()
        world.processor.run_turn(1, now)

        second = world.processor.run_turn(2, now + MS_PER_HOUR)
        assert second.skipped_recently_paid == 1
        assert second.ceos_paid == 0

        third = world.processor.run_turn(3, now + 96 * MS_PER_HOUR)
        assert third.ceos_paid == 1
        assert world.ledger.user(1).cash == 200_000.0

    def test_unaffordable_salary_zeroed(self, world):
        corp = world.add_corporation(ceo_id=1, cash=50_000.0)

        result = world.processor.run_turn(1, world.clock())

        assert result.salaries_zeroed == 1
        assert result.ceos_paid == 0
        updated = world.ledger.corporation(corp.corporation_id)
        assert updated.ceo_salary == 0.0
        assert updated.cash == 50_000.0
        assert world.ledger.user(1).cash == 0.0

    def test_vacant_ceo_not_paid(self, world):
        world.add_corporation(ceo_id=None, holdings={1: 800_000})
        result = world.processor.run_turn(1, world.clock())
        assert result.ceos_paid == 0
        assert result.ceos_count == 0


class TestDividends:
    """Тесты обыкновенного дивиденда."""

    def test_dividend_from_operating_income(self, world):
        """4 юнита × 175 × 96 ч = 67 200; 10% делится между держателями."""
        processor = TurnProcessor(
            world.ledger,
            world.economics,
            world.valuation,
            TurnConfig(turn_hours=96.0, max_workers=2),
        )
        corp = world.add_corporation(
            ceo_id=1,
            ceo_salary=0.0,
            dividend_percentage=10,
            holdings={1: 600_000, 2: 200_000},
        )
        cid = corp.corporation_id
        world.add_entry(cid, "Light Industry", "CA", {"production": 4})

        result = processor.run_turn(1, world.clock())

        assert result.dividends_paid == pytest.approx(6_720.0)
        assert world.ledger.user(1).cash == pytest.approx(5_040.0)
        assert world.ledger.user(2).cash == pytest.approx(1_680.0)
        assert world.ledger.corporation(cid).cash == pytest.approx(1_060_480.0)

    def test_no_dividend_on_loss(self, world):
        corp = world.add_corporation(ceo_id=1, ceo_salary=0.0, dividend_percentage=50)
        world.add_entry(corp.corporation_id, "Mining", "WY", {"extraction": 1})
        result = world.processor.run_turn(1, world.clock())
        assert result.dividends_paid == 0.0

    def test_salary_reduces_dividend_base(self, world):
        """Операционный убыток после зарплаты: дивиденд не выплачивается."""
        corp = world.add_corporation(ceo_id=1, dividend_percentage=10)
        world.add_entry(corp.corporation_id, "Light Industry", "CA", {"production": 2})
        result = world.processor.run_turn(1, world.clock())
        assert result.ceos_paid == 1
        assert result.dividends_paid == 0.0


class TestIdempotency:
    """Тесты повторного хода."""

    def test_same_period_skipped(self, world):
        corp = world.add_corporation(ceo_id=1, ceo_salary=0.0)
        world.add_entry(corp.corporation_id, "Light Industry", "CA", {"production": 2})
        world.processor.run_turn(1, world.clock())
        cash = world.ledger.corporation(corp.corporation_id).cash

        result = world.processor.run_turn(1, world.clock())

        assert result.skipped_already_processed == 1
        assert result.corporations_processed == 0
        assert result.total_profit == 0.0
        assert world.ledger.corporation(corp.corporation_id).cash == cash

    def test_older_period_skipped(self, world):
        world.add_corporation(ceo_id=1, ceo_salary=0.0)
        world.processor.run_turn(5, world.clock())
        result = world.processor.run_turn(4, world.clock())
        assert result.skipped_already_processed == 1


class TestTurn:
    """Тесты хода целиком."""

    def test_failure_isolated(self, world):
        broken = world.add_corporation(ceo_id=1, ceo_salary=0.0)
        healthy = world.add_corporation(ceo_id=2, ceo_salary=0.0)
        world.add_entry(broken.corporation_id, "Space Tourism", "CA", {"production": 1})
        world.add_entry(healthy.corporation_id, "Light Industry", "CA", {"production": 1})

        result = world.processor.run_turn(1, world.clock())

        assert result.failed_corporations == [
            {"corporation_id": broken.corporation_id, "error_code": "unknown_catalog_entry"}
        ]
        assert result.corporations_processed == 1
        assert world.ledger.corporation(broken.corporation_id).last_processed_period is None
        assert world.ledger.corporation(healthy.corporation_id).last_processed_period == 1

    def test_unexpected_error_isolated(self, world, monkeypatch):
        """Не-доменное исключение одной корпорации не прерывает ход."""
        broken = world.add_corporation(ceo_id=1)
        healthy = world.add_corporation(ceo_id=2)
        original = world.processor._pay_salary

        def flaky_pay_salary(corporation_id, now, outcome):
            if corporation_id == broken.corporation_id:
                raise KeyError("corrupted salary record")
            original(corporation_id, now, outcome)

        monkeypatch.setattr(world.processor, "_pay_salary", flaky_pay_salary)

        result = world.processor.run_turn(1, world.clock())

        assert result.failed_corporations == [
            {"corporation_id": broken.corporation_id, "error_code": "internal_error"}
        ]
        assert result.ceos_paid == 1
        assert world.ledger.corporation(broken.corporation_id).cash == 1_000_000.0
        assert world.ledger.corporation(healthy.corporation_id).last_processed_period == 1
        assert len(world.pricer.history("Steel")) == 1
        validate_turn_result(result.to_dict())

    def test_integrity_error_aborts_turn(self, world, monkeypatch):
        corp = world.add_corporation(ceo_id=1)

        def drifted(corporation_id, now, outcome):
            raise ShareCountDrift(corporation_id, 1_000_000, 800_000, 100_000)

        monkeypatch.setattr(world.processor, "_pay_salary", drifted)

        with pytest.raises(ShareCountDrift):
            world.processor.run_turn(1, world.clock())
        assert world.ledger.corporation(corp.corporation_id).last_processed_period is None

    def test_cash_never_negative(self, world):
        world.add_corporation(ceo_id=1, cash=1_000.0)
        loss = world.add_corporation(ceo_id=2, cash=5_000.0, ceo_salary=1_000.0)
        world.add_entry(loss.corporation_id, "Mining", "WY", {"extraction": 3})
        rich = world.add_corporation(ceo_id=3, dividend_percentage=100)
        world.add_entry(rich.corporation_id, "Retail", "CA", {"retail": 2})

        now = world.clock()
        for period in range(1, 6):
            world.processor.run_turn(period, now + period * 96 * MS_PER_HOUR)
            for corp in world.ledger.corporations():
                assert corp.cash >= 0
            for user in world.ledger.users():
                assert user.cash >= 0

    def test_result_contract(self, world):
        world.add_corporation(ceo_id=1)
        result = world.processor.run_turn(1, world.clock())
        validate_turn_result(result.to_dict())

    def test_prices_sampled_and_valuations_recomputed(self, world):
        corp = world.add_corporation(ceo_id=1, ceo_salary=0.0, cash=2_000_000.0)
        now = world.clock()
        world.processor.run_turn(1, now)
        assert len(world.pricer.history("Steel")) == 1
        assert world.ledger.corporation(corp.corporation_id).share_price == 2.0
        assert world.ledger.share_price_history(corp.corporation_id)[-1].ts_utc_ms == now

    def test_dissolved_corporations_ignored(self, world):
        corp = world.add_corporation(ceo_id=1)
        world.lifecycle.dissolve_corporation(corp.corporation_id, 1)
        result = world.processor.run_turn(1, world.clock())
        assert result.corporations_processed == 0

    def test_recalculate_prices(self, world):
        world.add_corporation(ceo_id=1)
        world.add_corporation(ceo_id=2)
        result = world.processor.recalculate_prices(world.clock())
        assert result.corporations_updated == 2
