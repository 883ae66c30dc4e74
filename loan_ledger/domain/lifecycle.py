"""Lifecycle state machine - legal transitions for applications, judgments and contracts"""

from typing import Dict, FrozenSet, Optional

from loan_ledger.domain.exceptions import UnprocessableEntityError, ValidationError
from loan_ledger.domain.models import ApplicationState, ContractStatus, JudgmentStatus

CONTRACT_TRANSITIONS: Dict[ContractStatus, FrozenSet[ContractStatus]] = {
    ContractStatus.PENDING: frozenset(
        {ContractStatus.SIGNED, ContractStatus.ACTIVE, ContractStatus.CANCELLED}
    ),
    ContractStatus.SIGNED: frozenset({ContractStatus.ACTIVE, ContractStatus.CANCELLED}),
    # Re-entering active is allowed and must not fund the balance twice
    ContractStatus.ACTIVE: frozenset(
        {ContractStatus.ACTIVE, ContractStatus.COMPLETED, ContractStatus.CANCELLED}
    ),
    ContractStatus.COMPLETED: frozenset(),
    ContractStatus.CANCELLED: frozenset(),
}

TERMINAL_CONTRACT_STATUSES = frozenset(
    status for status, targets in CONTRACT_TRANSITIONS.items() if not targets
)


def parse_contract_status(value: str | ContractStatus) -> ContractStatus:
    """Coerce a raw status string, rejecting unknown values"""
    try:
        return ContractStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ContractStatus)
        raise ValidationError(f"Unknown contract status '{value}' (expected one of: {allowed})")


def validate_contract_transition(current: str | ContractStatus, target: str | ContractStatus) -> ContractStatus:
    """
    Check a contract status change against the transition table.

    Requirements:
    - pending -> signed -> active -> completed
    - cancelled reachable from any non-terminal state
    - pending -> active allowed (signing recorded implicitly)
    - completed and cancelled are terminal

    Returns:
        The parsed target status

    Raises:
        UnprocessableEntityError: transition not allowed from the current status
    """
    current_status = parse_contract_status(current)
    target_status = parse_contract_status(target)

    if target_status not in CONTRACT_TRANSITIONS[current_status]:
        raise UnprocessableEntityError(
            f"Contract cannot move from '{current_status.value}' to '{target_status.value}'"
        )
    return target_status


def is_activation(current: str | ContractStatus, target: ContractStatus) -> bool:
    """True when the transition enters active for the first time"""
    return target == ContractStatus.ACTIVE and parse_contract_status(current) != ContractStatus.ACTIVE


def resolve_judgment_status(
    approval_amount: int,
    reason: Optional[str] = None,
    status: str | JudgmentStatus | None = None,
) -> JudgmentStatus:
    """
    Work out the explicit judgment status.

    A positive approval amount means approved; otherwise a reason means
    rejected and no reason means still pending. An explicit status wins but
    must agree with the amount.
    """
    if status is None:
        if approval_amount > 0:
            return JudgmentStatus.APPROVED
        return JudgmentStatus.REJECTED if reason else JudgmentStatus.PENDING

    try:
        resolved = JudgmentStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in JudgmentStatus)
        raise ValidationError(f"Unknown judgment status '{status}' (expected one of: {allowed})")

    if resolved == JudgmentStatus.APPROVED and approval_amount <= 0:
        raise ValidationError("Approved judgment requires a positive approval amount")
    return resolved


def derive_application_state(
    has_judgment: bool,
    contracted: bool,
    contract_status: Optional[str] = None,
) -> ApplicationState:
    """Application state from the presence of its related records"""
    if contract_status is not None and parse_contract_status(contract_status) == ContractStatus.ACTIVE:
        return ApplicationState.ACTIVE
    if contracted:
        return ApplicationState.CONTRACTED
    if has_judgment:
        return ApplicationState.JUDGED
    return ApplicationState.SUBMITTED
