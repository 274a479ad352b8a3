import logging

from sla_engine.engine.errors import SlaConfigurationError
from sla_engine.engine.types import ContractConfig, SlaTargets
from sla_engine.models.base import PriorityScope, TicketPriority

logger = logging.getLogger(__name__)

_SCOPE_PRIORITIES = {
    PriorityScope.ALL: frozenset(TicketPriority),
    PriorityScope.P1_P2: frozenset({TicketPriority.P1, TicketPriority.P2}),
    PriorityScope.P1_ONLY: frozenset({TicketPriority.P1}),
}


def resolve_targets(
    config: ContractConfig,
    priority: TicketPriority,
    default_warning_threshold: float = 0.80,
) -> SlaTargets | None:
    """Budgets for ``priority`` under ``config``, or ``None`` when SLA is off.

    Raises :class:`SlaConfigurationError` when the contract cannot be tracked
    at all (no support type, no policy, or a response budget longer than the
    resolution budget).
    """
    support_type = config.support_type
    policy = config.sla_policy
    if support_type is None:
        raise SlaConfigurationError(f"Contract {config.contract_number} has no support type")
    if policy is None:
        raise SlaConfigurationError(f"Contract {config.contract_number} has no SLA policy")

    if priority not in _SCOPE_PRIORITIES[support_type.priority_scope]:
        logger.debug(
            "Priority %s outside scope %s of support type %s",
            priority.value,
            support_type.priority_scope.value,
            support_type.name,
        )
        return None
    if not support_type.is_enabled_for(priority):
        return None

    target = policy.target_for(priority)
    if target is None or not target.enabled:
        return None

    if target.response_minutes < 0 or target.resolution_minutes < 0:
        raise SlaConfigurationError(
            f"Policy {policy.name} has a negative budget for {priority.value}"
        )
    if target.response_minutes > target.resolution_minutes:
        raise SlaConfigurationError(
            f"Policy {policy.name} {priority.value}: response budget "
            f"({target.response_minutes}) exceeds resolution budget ({target.resolution_minutes})"
        )

    threshold = policy.warning_threshold
    if threshold is None:
        threshold = default_warning_threshold
    if not 0 < threshold <= 1:
        raise SlaConfigurationError(
            f"Policy {policy.name} has warning threshold {threshold} outside (0, 1]"
        )

    return SlaTargets(
        response_minutes=target.response_minutes,
        resolution_minutes=target.resolution_minutes,
        warning_threshold=threshold,
        on_call=priority in support_type.on_call_priorities,
    )
