"""
Governance — State machine предложений совета директоров

    ACTIVE ──(aye >= majority | все проголосовали и aye > nay | expiry и aye > nay)──► PASSED
    ACTIVE ──(nay >= majority | все проголосовали и aye <= nay | expiry и aye <= nay)──► FAILED

PASSED/FAILED терминальны. Переход в PASSED и применение эффекта выполняются
в одном Ledger.atomic: если эффект нарушает бизнес-правило, изменения
откатываются и предложение помечается FAILED с failure_reason = код ошибки.

Совет = CEO (или крупнейший акционер как acting CEO при вакансии)
+ назначенные члены. majority = floor(n / 2) + 1.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Tuple

from pydantic import BaseModel, ValidationError

from src.core.domain.errors import (
    AlreadyBoardMember,
    AlreadyPublic,
    AlreadyVoted,
    BoardFull,
    BusinessRuleViolation,
    CooldownActive,
    CorporationDissolved,
    InvalidProposalPayload,
    NotAuthorized,
    NotBoardMember,
    ProposalNotActive,
    SimulationValidationError,
    UnappliedProposal,
    VotingInProgress,
)
from src.core.domain.proposal import (
    AppointMemberPayload,
    BoardProposal,
    CeoNominationPayload,
    GoPublicPayload,
    HqChangePayload,
    ProposalStatus,
    ProposalType,
    SectorChangePayload,
    SpecialDividendPayload,
    Vote,
    VoteChoice,
    parse_payload,
)
from src.economy.chain_model import ChainModel
from src.economy.market_pricer import MS_PER_HOUR
from src.economy.regions import validate_region
from src.governance.effects import BOARD_CHANGING_TYPES, EffectContext, apply_effect
from src.ledger.ledger import Ledger
from src.market.share_market import ShareMarket

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIG & RESULTS
# =============================================================================


@dataclass(frozen=True)
class GovernanceConfig:
    proposal_ttl_ms: int = 12 * MS_PER_HOUR
    special_dividend_cooldown_ms: int = 96 * MS_PER_HOUR


@dataclass(frozen=True)
class GovernanceResolution:
    """Итог разрешения предложения."""

    proposal_id: int
    passed: bool  # Итог голосования
    aye: int
    nay: int
    applied: bool  # Эффект применён
    failure_reason: str | None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposal_id": self.proposal_id,
            "passed": self.passed,
            "vote_tally": {"aye": self.aye, "nay": self.nay},
            "applied": self.applied,
            "failure_reason": self.failure_reason,
        }


# =============================================================================
# STATE MACHINE
# =============================================================================


class Governance:
    """
    Хранилище предложений/голосов и переходы их состояний.

    Args:
        ledger: Ledger (корпорации, атомарность)
        share_market: Исполнение stock split
        chain: Каталог (проверка сектора)
        config: TTL и cooldown
    """

    def __init__(
        self,
        ledger: Ledger,
        share_market: ShareMarket,
        chain: ChainModel,
        config: GovernanceConfig | None = None,
    ):
        self.ledger = ledger
        self.chain = chain
        self.config = config or GovernanceConfig()
        self._effects = EffectContext(
            ledger=ledger,
            share_market=share_market,
            chain=chain,
            special_dividend_cooldown_ms=self.config.special_dividend_cooldown_ms,
        )
        self._lock = threading.RLock()
        self._proposals: Dict[int, BoardProposal] = {}
        self._votes: Dict[int, Dict[int, Vote]] = {}
        self._next_proposal_id = 1

    # =========================================================================
    # BOARD
    # =========================================================================

    def acting_ceo(self, corporation_id: int) -> int | None:
        """CEO; при вакансии — крупнейший акционер (при равенстве — меньший user_id)."""
        corporation = self.ledger.corporation(corporation_id)
        if corporation.ceo_id is not None:
            return corporation.ceo_id
        holdings = self.ledger.shareholders(corporation_id)
        if not holdings:
            return None
        return min(holdings, key=lambda uid: (-holdings[uid], uid))

    def board_members(self, corporation_id: int) -> Tuple[int, ...]:
        corporation = self.ledger.corporation(corporation_id)
        members: List[int] = []
        ceo = self.acting_ceo(corporation_id)
        if ceo is not None:
            members.append(ceo)
        members.extend(m for m in corporation.board_member_ids if m not in members)
        return tuple(members)

    @staticmethod
    def majority(member_count: int) -> int:
        return member_count // 2 + 1

    def resign_ceo(self, corporation_id: int, user_id: int) -> int | None:
        """
        Отставка CEO: пост становится вакантным, обязанности переходят к
        крупнейшему акционеру до избрания нового CEO советом.

        Returns:
            user_id нового acting CEO (None, если акционеров нет)

        Raises:
            CorporationDissolved: Корпорация ликвидирована
            NotAuthorized: user не является избранным CEO
        """
        with self.ledger.atomic(corporation_id):
            corporation = self.ledger.active_corporation(corporation_id)
            if corporation.ceo_id != user_id:
                raise NotAuthorized(
                    f"Only the elected CEO can resign (corporation {corporation_id})"
                )
            self.ledger.update_corporation(corporation_id, ceo_id=None)
            self._discard_non_member_votes(corporation_id)
            acting = self.acting_ceo(corporation_id)

        logger.info(
            "CEO %d of corporation %d resigned, acting CEO: %s", user_id, corporation_id, acting
        )
        return acting

    # =========================================================================
    # READ
    # =========================================================================

    def proposal(self, proposal_id: int) -> BoardProposal:
        try:
            return self._proposals[proposal_id]
        except KeyError:
            raise SimulationValidationError(f"Unknown proposal {proposal_id}") from None

    def proposals(
        self, corporation_id: int | None = None, status: ProposalStatus | None = None
    ) -> Tuple[BoardProposal, ...]:
        with self._lock:
            return tuple(
                p
                for p in self._proposals.values()
                if (corporation_id is None or p.corporation_id == corporation_id)
                and (status is None or p.status == status)
            )

    def votes(self, proposal_id: int) -> Tuple[Vote, ...]:
        with self._lock:
            return tuple(self._votes.get(proposal_id, {}).values())

    def tally(self, proposal_id: int) -> Tuple[int, int]:
        """(aye, nay) по голосам текущих членов совета."""
        proposal = self.proposal(proposal_id)
        members = set(self.board_members(proposal.corporation_id))
        votes = [v for v in self.votes(proposal_id) if v.voter_id in members]
        aye = sum(1 for v in votes if v.choice == VoteChoice.AYE)
        return aye, len(votes) - aye

    def is_decided(self, proposal_id: int) -> bool:
        """Решающее большинство aye/nay или голоса всех текущих членов совета."""
        proposal = self.proposal(proposal_id)
        members = self.board_members(proposal.corporation_id)
        aye, nay = self.tally(proposal_id)
        majority = self.majority(len(members))
        return aye >= majority or nay >= majority or aye + nay == len(members)

    # =========================================================================
    # CREATE
    # =========================================================================

    def create_proposal(
        self,
        corporation_id: int,
        proposer_id: int,
        payload: BaseModel | Mapping[str, Any],
        now_ts_utc_ms: int,
    ) -> BoardProposal:
        """
        Создание активного предложения.

        Raises:
            InvalidProposalPayload: Payload не разбирается в известный тип
            CorporationDissolved: Корпорация ликвидирована
            NotBoardMember: Предлагающий не член совета
            CooldownActive: Special dividend в период cooldown
        """
        if not isinstance(payload, BaseModel):
            try:
                payload = parse_payload(dict(payload))
            except ValidationError as exc:
                raise InvalidProposalPayload(f"Invalid proposal payload: {exc}") from exc
        proposal_type = ProposalType(payload.type)

        with self.ledger.atomic(corporation_id):
            corporation = self.ledger.active_corporation(corporation_id)
            if proposer_id not in self.board_members(corporation_id):
                raise NotBoardMember(corporation_id, proposer_id)
            self._check_payload(corporation_id, payload, now_ts_utc_ms)

            with self._lock:
                proposal = BoardProposal(
                    proposal_id=self._next_proposal_id,
                    corporation_id=corporation.corporation_id,
                    proposer_id=proposer_id,
                    payload=payload,
                    created_ts_utc_ms=now_ts_utc_ms,
                    expires_ts_utc_ms=now_ts_utc_ms + self.config.proposal_ttl_ms,
                )
                self._next_proposal_id += 1
                self._proposals[proposal.proposal_id] = proposal
                self._votes[proposal.proposal_id] = {}

        logger.info(
            "proposal %d (%s) created for corporation %d by user %d",
            proposal.proposal_id,
            proposal_type.value,
            corporation_id,
            proposer_id,
        )
        return proposal

    def _check_payload(self, corporation_id: int, payload: BaseModel, now: int) -> None:
        corporation = self.ledger.corporation(corporation_id)
        if isinstance(payload, SectorChangePayload):
            self.chain.sector(payload.new_sector)
        elif isinstance(payload, HqChangePayload):
            validate_region(payload.new_region)
        elif isinstance(payload, CeoNominationPayload):
            self.ledger.user(payload.nominee_id)
        elif isinstance(payload, AppointMemberPayload):
            self.ledger.user(payload.appointee_id)
            if payload.appointee_id in self.board_members(corporation_id):
                raise AlreadyBoardMember(corporation_id, payload.appointee_id)
            if len(corporation.board_member_ids) >= corporation.board_size - 1:
                raise BoardFull(f"Board of corporation {corporation_id} has no free seats")
        elif isinstance(payload, SpecialDividendPayload):
            last_paid = corporation.special_dividend_last_paid_ts_utc_ms
            cooldown = self.config.special_dividend_cooldown_ms
            if last_paid is not None and now < last_paid + cooldown:
                raise CooldownActive(last_paid + cooldown)
        elif isinstance(payload, GoPublicPayload):
            if corporation.public_shares > 0:
                raise AlreadyPublic(corporation_id, corporation.public_shares)

    # =========================================================================
    # VOTE
    # =========================================================================

    def cast_vote(
        self, proposal_id: int, voter_id: int, choice: VoteChoice, now_ts_utc_ms: int
    ) -> GovernanceResolution | None:
        """
        Голос члена совета.

        Returns:
            GovernanceResolution если голос (или истечение срока) разрешил
            предложение, иначе None

        Raises:
            ProposalNotActive: Предложение уже разрешено
            CorporationDissolved: Корпорация ликвидирована
            NotBoardMember: Голосующий не член совета
            AlreadyVoted: Повторный голос
        """
        choice = VoteChoice(choice)
        proposal = self.proposal(proposal_id)
        corporation_id = proposal.corporation_id

        with self.ledger.atomic(corporation_id):
            proposal = self.proposal(proposal_id)
            if not proposal.is_active:
                raise ProposalNotActive(proposal_id, proposal.status.value)
            self.ledger.active_corporation(corporation_id)
            if now_ts_utc_ms >= proposal.expires_ts_utc_ms:
                logger.debug("vote on expired proposal %d resolves it by expiry", proposal_id)
                return self._resolve_locked(proposal, now_ts_utc_ms)

            members = self.board_members(corporation_id)
            if voter_id not in members:
                raise NotBoardMember(corporation_id, voter_id)
            with self._lock:
                if voter_id in self._votes[proposal_id]:
                    raise AlreadyVoted(proposal_id, voter_id)
                self._votes[proposal_id][voter_id] = Vote(
                    proposal_id=proposal_id, voter_id=voter_id, choice=choice, ts_utc_ms=now_ts_utc_ms
                )
            self.ledger.on_rollback(lambda: self._drop_vote(proposal_id, voter_id))

            if self.is_decided(proposal_id):
                return self._resolve_locked(proposal, now_ts_utc_ms)
        return None

    def _drop_vote(self, proposal_id: int, voter_id: int) -> None:
        with self._lock:
            self._votes.get(proposal_id, {}).pop(voter_id, None)

    # =========================================================================
    # RESOLVE
    # =========================================================================

    def resolve(self, proposal_id: int, now_ts_utc_ms: int) -> GovernanceResolution:
        """
        Разрешение предложения по текущему счёту: aye > nay — PASSED.

        До expires_ts_utc_ms разрешение возможно только при решающем
        большинстве (is_decided); после истечения срока решает простое
        большинство поданных голосов.

        Raises:
            ProposalNotActive: Предложение уже разрешено (без side-effects)
            VotingInProgress: Срок не истёк и решающего большинства нет
        """
        proposal = self.proposal(proposal_id)
        with self.ledger.atomic(proposal.corporation_id):
            proposal = self.proposal(proposal_id)
            if not proposal.is_active:
                raise ProposalNotActive(proposal_id, proposal.status.value)
            corporation = self.ledger.corporation(proposal.corporation_id)
            if (
                not corporation.dissolved
                and now_ts_utc_ms < proposal.expires_ts_utc_ms
                and not self.is_decided(proposal_id)
            ):
                raise VotingInProgress(proposal_id, proposal.expires_ts_utc_ms)
            return self._resolve_locked(proposal, now_ts_utc_ms)

    def resolve_expired(self, now_ts_utc_ms: int) -> List[GovernanceResolution]:
        """Разрешение всех активных предложений с истёкшим сроком."""
        expired = [
            p
            for p in self.proposals(status=ProposalStatus.ACTIVE)
            if p.expires_ts_utc_ms <= now_ts_utc_ms
        ]
        results = []
        for proposal in sorted(expired, key=lambda p: p.proposal_id):
            try:
                results.append(self.resolve(proposal.proposal_id, now_ts_utc_ms))
            except ProposalNotActive:
                # Разрешено параллельно между выборкой и resolve
                continue
        return results

    def _resolve_locked(self, proposal: BoardProposal, now: int) -> GovernanceResolution:
        aye, nay = self.tally(proposal.proposal_id)
        applied = False
        if self.ledger.corporation(proposal.corporation_id).dissolved:
            passed = False
            failure_reason = CorporationDissolved.code
        else:
            passed = aye > nay
            failure_reason = None if passed else "rejected"

        if passed:
            try:
                with self.ledger.atomic(proposal.corporation_id):
                    apply_effect(
                        self._effects,
                        proposal.proposal_type,
                        proposal.corporation_id,
                        proposal.payload,
                        now,
                    )
                    if proposal.proposal_type in BOARD_CHANGING_TYPES:
                        self._discard_non_member_votes(proposal.corporation_id, proposal.proposal_id)
                applied = True
            except BusinessRuleViolation as exc:
                failure_reason = exc.code
                logger.warning(
                    "proposal %d passed but could not be applied: %s", proposal.proposal_id, exc
                )

        resolved = proposal.model_copy(
            update={
                "status": ProposalStatus.PASSED if applied else ProposalStatus.FAILED,
                "resolved_ts_utc_ms": now,
                "applied_ts_utc_ms": now if applied else None,
                "failure_reason": failure_reason,
            }
        )
        self._store(resolved)

        logger.info(
            "proposal %d (%s) resolved: %s (aye=%d nay=%d)",
            proposal.proposal_id,
            proposal.proposal_type.value,
            resolved.status.value,
            aye,
            nay,
        )
        return GovernanceResolution(
            proposal_id=proposal.proposal_id,
            passed=passed,
            aye=aye,
            nay=nay,
            applied=applied,
            failure_reason=failure_reason,
        )

    def _store(self, proposal: BoardProposal) -> None:
        with self._lock:
            previous = self._proposals[proposal.proposal_id]
            self._proposals[proposal.proposal_id] = proposal

        def undo() -> None:
            with self._lock:
                self._proposals[proposal.proposal_id] = previous

        self.ledger.on_rollback(undo)

    def _discard_non_member_votes(self, corporation_id: int, resolved_id: int | None = None) -> None:
        """Голоса бывших членов совета на остальных активных предложениях удаляются."""
        members = set(self.board_members(corporation_id))
        for other in self.proposals(corporation_id, ProposalStatus.ACTIVE):
            if other.proposal_id == resolved_id:
                continue
            with self._lock:
                stale = {
                    uid: vote
                    for uid, vote in self._votes[other.proposal_id].items()
                    if uid not in members
                }
                for uid in stale:
                    del self._votes[other.proposal_id][uid]
            if stale:
                logger.debug(
                    "discarded %d vote(s) of former board members on proposal %d",
                    len(stale),
                    other.proposal_id,
                )
                self.ledger.on_rollback(
                    lambda pid=other.proposal_id, removed=stale: self._restore_votes(pid, removed)
                )

    def _restore_votes(self, proposal_id: int, votes: Dict[int, Vote]) -> None:
        with self._lock:
            self._votes[proposal_id].update(votes)

    # =========================================================================
    # INTEGRITY
    # =========================================================================

    def verify_integrity(self, proposal_id: int) -> None:
        """
        Raises:
            UnappliedProposal: PASSED предложение без отметки применения
        """
        proposal = self.proposal(proposal_id)
        if proposal.status == ProposalStatus.PASSED and proposal.applied_ts_utc_ms is None:
            error = UnappliedProposal(f"Proposal {proposal_id} passed but was never applied")
            logger.error("integrity fault: %s", error)
            raise error
