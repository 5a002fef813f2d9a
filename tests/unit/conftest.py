"""
Общие fixtures: полностью собранный движок симуляции с управляемыми часами.

Компоненты связываются так же, как в рабочем окружении:
ChainModel → MarketPricer → UnitEconomics → Ledger → Valuation → ShareMarket
→ Governance / CorporateLifecycle / TurnProcessor.
"""

from dataclasses import dataclass

import pytest

from src.core.domain.corporation import Corporation, MarketEntry
from src.core.domain.catalog import UnitType
from src.economy.chain_model import ChainModel
from src.economy.market_pricer import MS_PER_HOUR, MarketPricer
from src.economy.unit_economics import UnitEconomics
from src.governance.state_machine import Governance
from src.ledger.ledger import Ledger
from src.ledger.lifecycle import CorporateLifecycle
from src.market.share_market import ShareMarket
from src.market.valuation import Valuation
from src.turn.processor import TurnConfig, TurnProcessor

T0 = 1_700_000_000_000


class FakeClock:
    """Управляемые часы (Unix ms)."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance_hours(self, hours: float) -> int:
        self.now += int(hours * MS_PER_HOUR)
        return self.now


@dataclass
class World:
    clock: FakeClock
    chain: ChainModel
    pricer: MarketPricer
    economics: UnitEconomics
    ledger: Ledger
    valuation: Valuation
    share_market: ShareMarket
    lifecycle: CorporateLifecycle
    governance: Governance
    processor: TurnProcessor

    def add_corporation(
        self,
        ceo_id: int = 1,
        cash: float = 1_000_000.0,
        total_shares: int = 1_000_000,
        public_shares: int = 200_000,
        holdings: dict | None = None,
        share_price: float = 1.0,
        **fields,
    ) -> Corporation:
        """Корпорация напрямую через Ledger (без стоимости основания)."""
        for user_id in {ceo_id, *(holdings or {})}:
            if user_id is not None and user_id not in {u.user_id for u in self.ledger.users()}:
                self.ledger.register_user(user_id)
        corporation = Corporation(
            corporation_id=self.ledger.next_corporation_id(),
            name=fields.pop("name", "Acme"),
            ceo_id=ceo_id,
            cash=cash,
            total_shares=total_shares,
            public_shares=public_shares,
            share_price=share_price,
            sector=fields.pop("sector", "Light Industry"),
            hq_region=fields.pop("hq_region", "CA"),
            created_ts_utc_ms=self.clock(),
            **fields,
        )
        if holdings is None:
            holdings = {ceo_id: total_shares - public_shares}
        self.ledger.add_corporation(corporation, holdings)
        return self.ledger.corporation(corporation.corporation_id)

    def add_entry(
        self, corporation_id: int, sector: str, region: str, counts: dict
    ) -> MarketEntry:
        """Market entry напрямую через Ledger (без влияния на цены)."""
        entry = MarketEntry(
            entry_id=self.ledger.next_entry_id(),
            corporation_id=corporation_id,
            region=region,
            sector=sector,
            unit_counts={UnitType(k): v for k, v in counts.items()},
            created_ts_utc_ms=self.clock(),
        )
        self.ledger.put_entry(entry)
        return entry


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def world(clock: FakeClock) -> World:
    chain = ChainModel.default()
    pricer = MarketPricer(chain)
    economics = UnitEconomics(chain, pricer)
    ledger = Ledger(clock=clock)
    valuation = Valuation(ledger, economics)
    share_market = ShareMarket(ledger, valuation)
    return World(
        clock=clock,
        chain=chain,
        pricer=pricer,
        economics=economics,
        ledger=ledger,
        valuation=valuation,
        share_market=share_market,
        lifecycle=CorporateLifecycle(ledger, chain, pricer),
        governance=Governance(ledger, share_market, chain),
        processor=TurnProcessor(ledger, economics, valuation, TurnConfig(max_workers=2)),
    )
