"""
Ledger — Финансовое состояние корпораций и пользователей

Владеет записями Corporation / Shareholder / UserAccount / MarketEntry,
историей сделок и цен акций, а также append-only журналом Transaction.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Каждое движение cash сопровождается ровно одной записью Transaction
2. cash >= 0 для корпораций и пользователей: дебет, нарушающий инвариант,
   отклоняется (InsufficientFunds), никогда не обрезается
3. total_shares = Σ holdings + public_shares (check_share_integrity)
4. Мутации одной корпорации сериализованы per-corporation lock;
   atomic() откатывает все изменения блока при исключении
5. Зачисление пользователю внутри atomic() нельзя потратить из другого
   потока до commit блока, поэтому откат всегда восстанавливает cash

Persistence — граница ответственности: Ledger играет роль in-memory хранилища
с атомарностью на уровне одной корпорации.
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Mapping, Tuple

from src.core.domain.corporation import (
    CorporateAction,
    Corporation,
    MarketEntry,
    PriceSample,
    Shareholder,
    ShareTrade,
    UserAccount,
)
from src.core.domain.errors import (
    CorporationDissolved,
    DependencyTimeout,
    InsufficientActions,
    InsufficientFunds,
    InsufficientHolding,
    InsufficientPublicFloat,
    ShareCountDrift,
    SimulationValidationError,
)
from src.core.domain.transaction import Transaction, TransactionType
from src.core.math.numerical_safeguards import (
    from_cents,
    to_cents,
    validate_non_negative,
    validate_positive,
    validate_share_count,
)

logger = logging.getLogger(__name__)


def system_clock_ms() -> int:
    """Текущее время (Unix ms)."""
    return int(time.time() * 1000)


# =============================================================================
# CONFIG
# =============================================================================


@dataclass(frozen=True)
class LedgerConfig:
    """Конфигурация Ledger."""

    lock_timeout_sec: float = 5.0  # Ожидание per-corporation lock


@dataclass
class _AtomicFrame:
    corporation_id: int
    undo: List[Callable[[], None]] = field(default_factory=list)
    pending: List[Transaction] = field(default_factory=list)
    credits: Dict[int, int] = field(default_factory=dict)  # user_id → незафиксированные центы


# =============================================================================
# LEDGER
# =============================================================================


class Ledger:
    """
    In-memory Ledger с per-corporation атомарностью.

    Args:
        config: Конфигурация (timeout lock)
        clock: Источник времени (Unix ms) для Transaction и history
    """

    def __init__(
        self,
        config: LedgerConfig | None = None,
        clock: Callable[[], int] | None = None,
    ):
        self.config = config or LedgerConfig()
        self.clock = clock or system_clock_ms

        self._corporations: Dict[int, Corporation] = {}
        self._holdings: Dict[int, Dict[int, Shareholder]] = {}
        self._users: Dict[int, UserAccount] = {}
        self._entries: Dict[int, MarketEntry] = {}
        self._trades: Dict[int, List[ShareTrade]] = {}
        self._price_history: Dict[int, List[PriceSample]] = {}
        self._transactions: List[Transaction] = []
        self._reserved_cents: Dict[int, int] = {}
        self._actions: Dict[int, List[CorporateAction]] = {}

        self._state_lock = threading.RLock()
        self._corp_locks: Dict[int, threading.RLock] = {}
        self._local = threading.local()
        self._next_ids: Dict[str, int] = {
            "corporation": 1,
            "entry": 1,
            "transaction": 1,
            "action": 1,
        }

    # =========================================================================
    # ATOMICITY
    # =========================================================================

    def lock_for(self, corporation_id: int) -> threading.RLock:
        with self._state_lock:
            lock = self._corp_locks.get(corporation_id)
            if lock is None:
                lock = threading.RLock()
                self._corp_locks[corporation_id] = lock
            return lock

    def _frames(self) -> List[_AtomicFrame]:
        frames = getattr(self._local, "frames", None)
        if frames is None:
            frames = []
            self._local.frames = frames
        return frames

    @property
    def in_atomic(self) -> bool:
        return bool(self._frames())

    @contextmanager
    def atomic(self, corporation_id: int) -> Iterator[None]:
        """
        Атомарный блок мутаций одной корпорации.

        - захватывает per-corporation lock (re-entrant) с timeout
        - копит undo-лог и Transaction записи блока
        - при исключении откатывает все изменения и отбрасывает записи
        - вложенный блок сливается во внешний (commit — только внешний)
        - зачисления пользователям резервируются до commit: другие потоки
          не могут потратить cash, который откат блока должен вернуть

        Откат выполняет все undo в обратном порядке; сбой отдельного шага
        логируется, откат продолжается, наружу выходит исходное исключение.

        Raises:
            DependencyTimeout: Если lock не получен за lock_timeout_sec
        """
        lock = self.lock_for(corporation_id)
        if not lock.acquire(timeout=self.config.lock_timeout_sec):
            raise DependencyTimeout(
                f"Could not lock corporation {corporation_id} within "
                f"{self.config.lock_timeout_sec}s"
            )
        frames = self._frames()
        frame = _AtomicFrame(corporation_id=corporation_id)
        frames.append(frame)
        try:
            yield
        except BaseException:
            frames.pop()
            failed_steps = 0
            for undo in reversed(frame.undo):
                try:
                    undo()
                except Exception:
                    failed_steps += 1
                    logger.exception("rollback step failed for corporation %d", corporation_id)
            self._release_credits(frame.credits)
            logger.debug(
                "rolled back %d change(s) (%d failed), %d transaction(s) for corporation %d",
                len(frame.undo),
                failed_steps,
                len(frame.pending),
                corporation_id,
            )
            raise
        else:
            frames.pop()
            if frames:
                parent = frames[-1]
                parent.undo.extend(frame.undo)
                parent.pending.extend(frame.pending)
                for user_id, cents in frame.credits.items():
                    parent.credits[user_id] = parent.credits.get(user_id, 0) + cents
            else:
                with self._state_lock:
                    self._transactions.extend(frame.pending)
                self._release_credits(frame.credits)
        finally:
            lock.release()

    def _release_credits(self, credits: Mapping[int, int]) -> None:
        with self._state_lock:
            for user_id, cents in credits.items():
                remaining = self._reserved_cents.get(user_id, 0) - cents
                if remaining > 0:
                    self._reserved_cents[user_id] = remaining
                else:
                    self._reserved_cents.pop(user_id, None)

    def _reserved_by_others(self, user_id: int) -> int:
        """Центы пользователя, зачисленные в незафиксированных блоках других потоков."""
        own = sum(f.credits.get(user_id, 0) for f in self._frames())
        return self._reserved_cents.get(user_id, 0) - own

    def on_rollback(self, undo: Callable[[], None]) -> None:
        """
        Регистрация компенсирующего действия внешнего хранилища (например,
        статуса предложения) в текущем atomic-блоке.
        """
        frames = self._frames()
        if frames:
            frames[-1].undo.append(undo)

    def _next_id(self, kind: str) -> int:
        with self._state_lock:
            value = self._next_ids[kind]
            self._next_ids[kind] = value + 1
            return value

    def next_corporation_id(self) -> int:
        return self._next_id("corporation")

    def next_entry_id(self) -> int:
        return self._next_id("entry")

    def next_action_id(self) -> int:
        return self._next_id("action")

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def _emit(
        self,
        transaction_type: TransactionType,
        amount: float,
        corporation_id: int | None = None,
        from_user_id: int | None = None,
        to_user_id: int | None = None,
        description: str = "",
        ref: str | None = None,
    ) -> Transaction:
        tx = Transaction(
            transaction_id=self._next_id("transaction"),
            transaction_type=transaction_type,
            amount=amount,
            corporation_id=corporation_id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            description=description,
            ref=ref,
            ts_utc_ms=self.clock(),
        )
        frames = self._frames()
        if frames:
            frames[-1].pending.append(tx)
        else:
            with self._state_lock:
                self._transactions.append(tx)
        return tx

    def transactions(self, corporation_id: int | None = None) -> Tuple[Transaction, ...]:
        with self._state_lock:
            if corporation_id is None:
                return tuple(self._transactions)
            return tuple(t for t in self._transactions if t.corporation_id == corporation_id)

    # =========================================================================
    # USERS
    # =========================================================================

    def register_user(self, user_id: int, cash: float = 0.0, actions: int = 0) -> UserAccount:
        with self._state_lock:
            if user_id in self._users:
                raise SimulationValidationError(f"User {user_id} already registered")
            account = UserAccount(user_id=user_id, cash=from_cents(to_cents(cash)), actions=actions)
            self._users[user_id] = account
            return account

    def user(self, user_id: int) -> UserAccount:
        try:
            return self._users[user_id]
        except KeyError:
            raise SimulationValidationError(f"Unknown user {user_id}") from None

    def users(self) -> Tuple[UserAccount, ...]:
        with self._state_lock:
            return tuple(self._users.values())

    def _adjust_user(
        self, user_id: int, cash_cents: int = 0, actions: int = 0, record: bool = True
    ) -> UserAccount:
        frames = self._frames()
        with self._state_lock:
            account = self.user(user_id)
            new_cents = to_cents(account.cash) + cash_cents
            # Откат (record=False) возвращает собственное зачисление и резерв не проверяет
            reserved = self._reserved_by_others(user_id) if record and cash_cents < 0 else 0
            if new_cents < reserved:
                raise InsufficientFunds(
                    f"User {user_id}",
                    from_cents(to_cents(account.cash) - reserved),
                    from_cents(-cash_cents),
                )
            if account.actions + actions < 0:
                raise InsufficientActions(user_id, account.actions, -actions)
            updated = account.model_copy(
                update={"cash": from_cents(new_cents), "actions": account.actions + actions}
            )
            self._users[user_id] = updated
            if record and cash_cents > 0 and frames:
                credits = frames[-1].credits
                credits[user_id] = credits.get(user_id, 0) + cash_cents
                self._reserved_cents[user_id] = self._reserved_cents.get(user_id, 0) + cash_cents

        if record and (cash_cents or actions):
            self.on_rollback(
                lambda: self._adjust_user(user_id, -cash_cents, -actions, record=False)
            )
        return updated

    def credit_user(
        self,
        user_id: int,
        amount: float,
        transaction_type: TransactionType,
        corporation_id: int | None = None,
        description: str = "",
        ref: str | None = None,
    ) -> Transaction:
        """Зачисление пользователю из-вне системы (выручка продажи, admin grant)."""
        validate_non_negative(amount, "amount")
        cents = to_cents(amount)
        self._adjust_user(user_id, cash_cents=cents)
        return self._emit(
            transaction_type,
            from_cents(cents),
            corporation_id=corporation_id,
            to_user_id=user_id,
            description=description,
            ref=ref,
        )

    def charge_user(
        self,
        user_id: int,
        amount: float,
        transaction_type: TransactionType,
        corporation_id: int | None = None,
        description: str = "",
        ref: str | None = None,
    ) -> Transaction:
        """
        Списание с пользователя.

        Raises:
            InsufficientFunds: Если cash пользователя < amount
        """
        validate_non_negative(amount, "amount")
        cents = to_cents(amount)
        self._adjust_user(user_id, cash_cents=-cents)
        return self._emit(
            transaction_type,
            from_cents(cents),
            corporation_id=corporation_id,
            from_user_id=user_id,
            description=description,
            ref=ref,
        )

    def grant_actions(self, user_id: int, count: int) -> UserAccount:
        validate_share_count(count, "actions")
        return self._adjust_user(user_id, actions=count)

    def spend_actions(self, user_id: int, count: int) -> UserAccount:
        """
        Raises:
            InsufficientActions: Если action points недостаточно
        """
        validate_share_count(count, "actions")
        return self._adjust_user(user_id, actions=-count)

    # =========================================================================
    # CORPORATIONS
    # =========================================================================

    def add_corporation(self, corporation: Corporation, holdings: Mapping[int, int]) -> None:
        """
        Регистрация новой корпорации вместе с начальными позициями.

        Raises:
            ShareCountDrift: Если позиции не сходятся с total/public shares
        """
        with self.atomic(corporation.corporation_id):
            with self._state_lock:
                if corporation.corporation_id in self._corporations:
                    raise SimulationValidationError(
                        f"Corporation {corporation.corporation_id} already exists"
                    )
            self._put_corporation(corporation)
            for user_id, shares in holdings.items():
                self.user(user_id)
                self._put_holding(corporation.corporation_id, user_id, shares)
            self.check_share_integrity(corporation.corporation_id)

    def corporation(self, corporation_id: int) -> Corporation:
        try:
            return self._corporations[corporation_id]
        except KeyError:
            raise SimulationValidationError(f"Unknown corporation {corporation_id}") from None

    def active_corporation(self, corporation_id: int) -> Corporation:
        """
        Raises:
            CorporationDissolved: Корпорация ликвидирована
        """
        corporation = self.corporation(corporation_id)
        if corporation.dissolved:
            raise CorporationDissolved(corporation_id)
        return corporation

    def corporations(self, include_dissolved: bool = False) -> Tuple[Corporation, ...]:
        with self._state_lock:
            return tuple(
                c for c in self._corporations.values() if include_dissolved or not c.dissolved
            )

    def _put_corporation(self, corporation: Corporation) -> None:
        corporation_id = corporation.corporation_id
        with self._state_lock:
            previous = self._corporations.get(corporation_id)
            self._corporations[corporation_id] = corporation
            self._holdings.setdefault(corporation_id, {})

        def undo() -> None:
            with self._state_lock:
                if previous is None:
                    self._corporations.pop(corporation_id, None)
                else:
                    self._corporations[corporation_id] = previous

        self.on_rollback(undo)

    def update_corporation(self, corporation_id: int, **changes) -> Corporation:
        """
        Замена полей корпорации с полной pydantic-валидацией.

        Raises:
            pydantic.ValidationError: Если новое состояние невалидно
        """
        current = self.corporation(corporation_id)
        updated = Corporation.model_validate({**current.model_dump(), **changes})
        self._put_corporation(updated)
        return updated

    def credit(
        self,
        corporation_id: int,
        amount: float,
        transaction_type: TransactionType,
        ref: str | None = None,
        description: str = "",
    ) -> Transaction:
        """Зачисление на cash корпорации."""
        validate_non_negative(amount, "amount")
        cents = to_cents(amount)
        corporation = self.corporation(corporation_id)
        self.update_corporation(corporation_id, cash=from_cents(to_cents(corporation.cash) + cents))
        return self._emit(
            transaction_type,
            from_cents(cents),
            corporation_id=corporation_id,
            description=description,
            ref=ref,
        )

    def debit(
        self,
        corporation_id: int,
        amount: float,
        transaction_type: TransactionType,
        ref: str | None = None,
        description: str = "",
    ) -> Transaction:
        """
        Списание с cash корпорации.

        Raises:
            InsufficientFunds: Если cash < amount (без частичного списания)
        """
        validate_non_negative(amount, "amount")
        cents = to_cents(amount)
        corporation = self.corporation(corporation_id)
        available = to_cents(corporation.cash)
        if available < cents:
            raise InsufficientFunds(
                f"Corporation {corporation_id}", corporation.cash, from_cents(cents)
            )
        self.update_corporation(corporation_id, cash=from_cents(available - cents))
        return self._emit(
            transaction_type,
            from_cents(cents),
            corporation_id=corporation_id,
            description=description,
            ref=ref,
        )

    def pay_user(
        self,
        corporation_id: int,
        user_id: int,
        amount: float,
        transaction_type: TransactionType,
        ref: str | None = None,
        description: str = "",
    ) -> Transaction:
        """
        Выплата корпорация → пользователь (зарплата, дивиденд).

        Raises:
            InsufficientFunds: Если cash корпорации < amount
        """
        validate_non_negative(amount, "amount")
        cents = to_cents(amount)
        corporation = self.corporation(corporation_id)
        available = to_cents(corporation.cash)
        if available < cents:
            raise InsufficientFunds(
                f"Corporation {corporation_id}", corporation.cash, from_cents(cents)
            )
        self.update_corporation(corporation_id, cash=from_cents(available - cents))
        self._adjust_user(user_id, cash_cents=cents)
        return self._emit(
            transaction_type,
            from_cents(cents),
            corporation_id=corporation_id,
            to_user_id=user_id,
            description=description,
            ref=ref,
        )

    # =========================================================================
    # SHARES
    # =========================================================================

    def shareholders(self, corporation_id: int) -> Dict[int, int]:
        """{user_id: shares} — копия."""
        self.corporation(corporation_id)
        with self._state_lock:
            return {uid: sh.shares for uid, sh in self._holdings.get(corporation_id, {}).items()}

    def holding(self, corporation_id: int, user_id: int) -> int:
        with self._state_lock:
            shareholder = self._holdings.get(corporation_id, {}).get(user_id)
            return shareholder.shares if shareholder else 0

    def _put_holding(self, corporation_id: int, user_id: int, shares: int) -> None:
        with self._state_lock:
            book = self._holdings.setdefault(corporation_id, {})
            previous = book.get(user_id)
            if shares == 0:
                book.pop(user_id, None)
            else:
                book[user_id] = Shareholder(
                    corporation_id=corporation_id, user_id=user_id, shares=shares
                )

        def undo() -> None:
            with self._state_lock:
                if previous is None:
                    self._holdings[corporation_id].pop(user_id, None)
                else:
                    self._holdings[corporation_id][user_id] = previous

        self.on_rollback(undo)

    def transfer_shares(
        self,
        corporation_id: int,
        from_user_id: int | None,
        to_user_id: int | None,
        count: int,
    ) -> None:
        """
        Перемещение акций. None означает public float корпорации.

        Raises:
            InsufficientPublicFloat: Если float < count
            InsufficientHolding: Если позиция продавца < count
        """
        validate_share_count(count)
        if from_user_id == to_user_id:
            raise SimulationValidationError("Share transfer requires distinct parties")
        corporation = self.corporation(corporation_id)

        with self.atomic(corporation_id):
            if from_user_id is None:
                if corporation.public_shares < count:
                    raise InsufficientPublicFloat(corporation_id, corporation.public_shares, count)
                self.update_corporation(corporation_id, public_shares=corporation.public_shares - count)
            else:
                held = self.holding(corporation_id, from_user_id)
                if held < count:
                    raise InsufficientHolding(from_user_id, held, count)
                self._put_holding(corporation_id, from_user_id, held - count)

            if to_user_id is None:
                current = self.corporation(corporation_id)
                self.update_corporation(corporation_id, public_shares=current.public_shares + count)
            else:
                self.user(to_user_id)
                self._put_holding(
                    corporation_id, to_user_id, self.holding(corporation_id, to_user_id) + count
                )

    def mint_public_shares(self, corporation_id: int, count: int) -> Corporation:
        """Выпуск новых акций в public float (total и public растут)."""
        validate_share_count(count)
        corporation = self.corporation(corporation_id)
        return self.update_corporation(
            corporation_id,
            total_shares=corporation.total_shares + count,
            public_shares=corporation.public_shares + count,
        )

    def retire_public_shares(self, corporation_id: int, count: int) -> Corporation:
        """
        Погашение акций из public float (total и public уменьшаются).

        Raises:
            InsufficientPublicFloat: Если float < count или погашение
                не оставляет ни одной акции
        """
        validate_share_count(count)
        corporation = self.corporation(corporation_id)
        if corporation.public_shares < count or corporation.total_shares <= count:
            raise InsufficientPublicFloat(corporation_id, corporation.public_shares, count)
        return self.update_corporation(
            corporation_id,
            total_shares=corporation.total_shares - count,
            public_shares=corporation.public_shares - count,
        )

    def scale_shares(self, corporation_id: int, ratio: int) -> Corporation:
        """
        Умножение total/public/всех позиций и истории сделок на ratio.

        Целочисленная арифметика: акции не создаются и не теряются.
        """
        validate_share_count(ratio, "ratio")
        with self.atomic(corporation_id):
            for user_id, shares in self.shareholders(corporation_id).items():
                self._put_holding(corporation_id, user_id, shares * ratio)
            with self._state_lock:
                previous_trades = list(self._trades.get(corporation_id, []))
                self._trades[corporation_id] = [
                    t.model_copy(
                        update={"shares": t.shares * ratio, "price_per_share": t.price_per_share / ratio}
                    )
                    for t in previous_trades
                ]

            def undo() -> None:
                with self._state_lock:
                    self._trades[corporation_id] = previous_trades

            self.on_rollback(undo)
            corporation = self.corporation(corporation_id)
            return self.update_corporation(
                corporation_id,
                total_shares=corporation.total_shares * ratio,
                public_shares=corporation.public_shares * ratio,
            )

    def check_share_integrity(self, corporation_id: int) -> None:
        """
        Проверка total_shares = Σ holdings + public_shares.

        Raises:
            ShareCountDrift: Расхождение (логируется, не исправляется)
        """
        corporation = self.corporation(corporation_id)
        held = sum(self.shareholders(corporation_id).values())
        if corporation.total_shares != held + corporation.public_shares:
            error = ShareCountDrift(
                corporation_id, corporation.total_shares, held, corporation.public_shares
            )
            logger.error("integrity fault: %s", error)
            raise error

    # =========================================================================
    # TRADES & SHARE PRICE HISTORY
    # =========================================================================

    def record_trade(self, trade: ShareTrade) -> None:
        with self._state_lock:
            self._trades.setdefault(trade.corporation_id, []).append(trade)

        def undo() -> None:
            with self._state_lock:
                self._trades[trade.corporation_id].remove(trade)

        self.on_rollback(undo)

    def trades(self, corporation_id: int, since_ts_utc_ms: int | None = None) -> Tuple[ShareTrade, ...]:
        with self._state_lock:
            trades = self._trades.get(corporation_id, [])
            if since_ts_utc_ms is None:
                return tuple(trades)
            return tuple(t for t in trades if t.ts_utc_ms >= since_ts_utc_ms)

    def record_share_price(
        self, corporation_id: int, price: float, ts_utc_ms: int | None = None
    ) -> Corporation:
        """Запись новой цены акции и sample в историю."""
        validate_positive(price, "share_price")
        updated = self.update_corporation(corporation_id, share_price=price)
        ts = self.clock() if ts_utc_ms is None else ts_utc_ms
        sample = PriceSample(name=updated.name, price=price, ts_utc_ms=ts)
        with self._state_lock:
            self._price_history.setdefault(corporation_id, []).append(sample)

        def undo() -> None:
            with self._state_lock:
                self._price_history[corporation_id].remove(sample)

        self.on_rollback(undo)
        return updated

    def share_price_history(self, corporation_id: int) -> Tuple[PriceSample, ...]:
        with self._state_lock:
            return tuple(self._price_history.get(corporation_id, []))

    # =========================================================================
    # MARKET ENTRIES
    # =========================================================================

    def entries(self, corporation_id: int | None = None) -> Tuple[MarketEntry, ...]:
        with self._state_lock:
            return tuple(
                e
                for e in self._entries.values()
                if corporation_id is None or e.corporation_id == corporation_id
            )

    def entry(self, entry_id: int) -> MarketEntry:
        try:
            return self._entries[entry_id]
        except KeyError:
            raise SimulationValidationError(f"Unknown market entry {entry_id}") from None

    def put_entry(self, entry: MarketEntry) -> None:
        with self._state_lock:
            previous = self._entries.get(entry.entry_id)
            self._entries[entry.entry_id] = entry

        def undo() -> None:
            with self._state_lock:
                if previous is None:
                    self._entries.pop(entry.entry_id, None)
                else:
                    self._entries[entry.entry_id] = previous

        self.on_rollback(undo)

    def remove_entry(self, entry_id: int) -> MarketEntry:
        with self._state_lock:
            previous = self.entry(entry_id)
            del self._entries[entry_id]

        def undo() -> None:
            with self._state_lock:
                self._entries[entry_id] = previous

        self.on_rollback(undo)
        return previous

    # =========================================================================
    # CORPORATE ACTIONS
    # =========================================================================

    def add_corporate_action(self, action: CorporateAction) -> None:
        with self._state_lock:
            self._actions.setdefault(action.corporation_id, []).append(action)

        def undo() -> None:
            with self._state_lock:
                self._actions[action.corporation_id].remove(action)

        self.on_rollback(undo)

    def corporate_actions(
        self, corporation_id: int, active_at_ts_utc_ms: int | None = None
    ) -> Tuple[CorporateAction, ...]:
        """Действия корпорации; при active_at_ts_utc_ms — только активные в этот момент."""
        with self._state_lock:
            actions = self._actions.get(corporation_id, [])
            return tuple(
                a
                for a in actions
                if active_at_ts_utc_ms is None or a.is_active(active_at_ts_utc_ms)
            )
