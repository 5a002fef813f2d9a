"""
Errors — Иерархия исключений симуляции

Четыре категории:
1. SimulationValidationError — некорректный ввод, отклоняется до любой мутации
2. BusinessRuleViolation — нарушение игрового правила (именованное условие)
3. IntegrityError — нарушение инвариантов данных (логируется, не исправляется)
4. DependencyTimeout — внешняя зависимость (lock/persistence) недоступна

Каждое исключение несёт стабильный машиночитаемый `code`, из которого
строится сообщение для пользователя.
"""


class SimulationError(Exception):
    """Базовое исключение симуляции."""

    code: str = "simulation_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.message} ({self.code})"


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class SimulationValidationError(SimulationError, ValueError):
    """Некорректный ввод (отрицательное количество, неизвестное имя и т.п.)."""

    code = "validation_error"


class UnknownCatalogEntry(SimulationValidationError):
    """Имя сектора/ресурса/продукта/региона отсутствует в каталоге.

    Каталог закрыт и версионирован: неизвестное имя — ошибка программиста.
    """

    code = "unknown_catalog_entry"

    def __init__(self, kind: str, name: str):
        super().__init__(f"Unknown {kind}: {name!r}")
        self.kind = kind
        self.name = name


class UnsupportedUnitType(SimulationValidationError):
    """Сектор не поддерживает данный тип юнита."""

    code = "unsupported_unit_type"

    def __init__(self, sector: str, unit_type: str):
        super().__init__(f"Sector {sector!r} cannot build {unit_type} units")
        self.sector = sector
        self.unit_type = unit_type


class InvalidProposalPayload(SimulationValidationError):
    """Payload предложения не соответствует типу предложения."""

    code = "invalid_proposal_payload"


# =============================================================================
# BUSINESS RULE VIOLATIONS
# =============================================================================


class BusinessRuleViolation(SimulationError):
    """Нарушение бизнес-правила, сообщается вызывающему как есть."""

    code = "business_rule_violation"


class InsufficientFunds(BusinessRuleViolation):
    code = "insufficient_funds"

    def __init__(self, owner: str, available: float, required: float):
        super().__init__(
            f"{owner} has {available:.2f} available, {required:.2f} required"
        )
        self.available = available
        self.required = required


class InsufficientActions(BusinessRuleViolation):
    code = "insufficient_actions"

    def __init__(self, user_id: int, available: int, required: int):
        super().__init__(
            f"User {user_id} has {available} action(s), {required} required"
        )


class InsufficientPublicFloat(BusinessRuleViolation):
    code = "insufficient_public_float"

    def __init__(self, corporation_id: int, available: int, requested: int):
        super().__init__(
            f"Corporation {corporation_id} has {available} public shares, "
            f"{requested} requested"
        )


class InsufficientHolding(BusinessRuleViolation):
    code = "insufficient_holding"

    def __init__(self, user_id: int, held: int, requested: int):
        super().__init__(f"User {user_id} holds {held} shares, {requested} requested")


class ExceedsIssuanceCap(BusinessRuleViolation):
    code = "exceeds_issuance_cap"

    def __init__(self, requested: int, cap: int):
        super().__init__(f"Issuance of {requested} shares exceeds cap of {cap}")
        self.requested = requested
        self.cap = cap


class CooldownActive(BusinessRuleViolation):
    code = "cooldown_active"

    def __init__(self, available_at_ts_utc_ms: int):
        super().__init__(
            f"Special dividend cooldown active until ts={available_at_ts_utc_ms}"
        )
        self.available_at_ts_utc_ms = available_at_ts_utc_ms


class AlreadyVoted(BusinessRuleViolation):
    code = "already_voted"

    def __init__(self, proposal_id: int, voter_id: int):
        super().__init__(f"User {voter_id} already voted on proposal {proposal_id}")


class NotBoardMember(BusinessRuleViolation):
    code = "not_board_member"

    def __init__(self, corporation_id: int, user_id: int):
        super().__init__(
            f"User {user_id} is not a board member of corporation {corporation_id}"
        )


class NotAuthorized(BusinessRuleViolation):
    code = "not_authorized"


class ProposalNotActive(BusinessRuleViolation):
    code = "proposal_not_active"

    def __init__(self, proposal_id: int, status: str):
        super().__init__(f"Proposal {proposal_id} is {status}")


class VotingInProgress(BusinessRuleViolation):
    """До истечения срока предложение разрешается только решающим большинством."""

    code = "voting_in_progress"

    def __init__(self, proposal_id: int, expires_ts_utc_ms: int):
        super().__init__(
            f"Proposal {proposal_id} has no decisive majority before ts={expires_ts_utc_ms}"
        )
        self.expires_ts_utc_ms = expires_ts_utc_ms


class CorporationDissolved(BusinessRuleViolation):
    code = "corporation_dissolved"

    def __init__(self, corporation_id: int):
        super().__init__(f"Corporation {corporation_id} is dissolved")
        self.corporation_id = corporation_id


class CorporateActionActive(BusinessRuleViolation):
    code = "corporate_action_active"

    def __init__(self, action_type: str, expires_ts_utc_ms: int):
        super().__init__(f"Corporate action {action_type} active until ts={expires_ts_utc_ms}")
        self.expires_ts_utc_ms = expires_ts_utc_ms


class BoardFull(BusinessRuleViolation):
    code = "board_full"


class AlreadyBoardMember(BusinessRuleViolation):
    code = "already_board_member"

    def __init__(self, corporation_id: int, user_id: int):
        super().__init__(
            f"User {user_id} is already on the board of corporation {corporation_id}"
        )


class CapacityExceeded(BusinessRuleViolation):
    code = "capacity_exceeded"

    def __init__(self, region: str, capacity: int):
        super().__init__(f"Region {region} sector capacity of {capacity} units reached")


class DuplicateMarketEntry(BusinessRuleViolation):
    code = "duplicate_market_entry"


class FocusRestriction(BusinessRuleViolation):
    code = "focus_restriction"


class CeoMustRetainShares(BusinessRuleViolation):
    code = "ceo_must_retain_shares"


class AlreadyPublic(BusinessRuleViolation):
    code = "already_public"

    def __init__(self, corporation_id: int, public_shares: int):
        super().__init__(
            f"Corporation {corporation_id} already has {public_shares} public shares"
        )


# =============================================================================
# INTEGRITY ERRORS
# =============================================================================


class IntegrityError(SimulationError):
    """Нарушение инвариантов хранимых данных.

    Не исправляется автоматически: сигнализирует о более глубокой ошибке.
    """

    code = "integrity_error"


class ShareCountDrift(IntegrityError):
    code = "share_count_drift"

    def __init__(self, corporation_id: int, total: int, held: int, public: int):
        super().__init__(
            f"Corporation {corporation_id}: total_shares={total} != "
            f"held={held} + public={public}"
        )
        self.corporation_id = corporation_id


class UnappliedProposal(IntegrityError):
    code = "unapplied_proposal"


# =============================================================================
# EXTERNAL DEPENDENCY FAILURES
# =============================================================================


class DependencyTimeout(SimulationError):
    """Внешний ресурс (lock, persistence) не получен за отведённое время."""

    code = "dependency_timeout"
