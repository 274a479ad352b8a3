from dataclasses import replace

import pytest

from sla_engine.engine.errors import SlaConfigurationError
from sla_engine.engine.targets import resolve_targets
from sla_engine.engine.types import PolicyTargetConfig, SlaPolicyConfig
from sla_engine.models.base import PriorityScope, TicketPriority
from tests.conftest import build_config


def test_resolves_budgets_for_priority():
    targets = resolve_targets(build_config(), TicketPriority.P1)
    assert targets.response_minutes == 15
    assert targets.resolution_minutes == 240
    assert targets.warning_threshold == 0.80
    assert targets.on_call is False


def test_default_threshold_used_when_policy_has_none():
    targets = resolve_targets(build_config(warning_threshold=None), TicketPriority.P2, 0.75)
    assert targets.warning_threshold == 0.75


def test_on_call_priority_is_flagged():
    config = build_config(on_call_priorities={TicketPriority.P1})
    assert resolve_targets(config, TicketPriority.P1).on_call is True
    assert resolve_targets(config, TicketPriority.P2).on_call is False


@pytest.mark.parametrize(
    "scope, priority, tracked",
    [
        (PriorityScope.P1_ONLY, TicketPriority.P1, True),
        (PriorityScope.P1_ONLY, TicketPriority.P2, False),
        (PriorityScope.P1_P2, TicketPriority.P2, True),
        (PriorityScope.P1_P2, TicketPriority.P3, False),
        (PriorityScope.ALL, TicketPriority.P4, True),
    ],
)
def test_priority_scope(scope, priority, tracked):
    targets = resolve_targets(build_config(priority_scope=scope), priority)
    assert (targets is not None) is tracked


def test_priority_disabled_on_support_type():
    config = build_config()
    support_type = replace(config.support_type, sla_enabled={TicketPriority.P3: False})
    config = replace(config, support_type=support_type)
    assert resolve_targets(config, TicketPriority.P3) is None
    assert resolve_targets(config, TicketPriority.P2) is not None


def test_missing_or_disabled_policy_target():
    policy = SlaPolicyConfig(
        name="Partial",
        targets=(PolicyTargetConfig(TicketPriority.P1, 15, 240, enabled=False),),
    )
    config = replace(build_config(), sla_policy=policy)
    assert resolve_targets(config, TicketPriority.P1) is None
    assert resolve_targets(config, TicketPriority.P2) is None


def test_missing_support_type_or_policy_is_a_configuration_error():
    with pytest.raises(SlaConfigurationError):
        resolve_targets(replace(build_config(), support_type=None), TicketPriority.P1)
    with pytest.raises(SlaConfigurationError):
        resolve_targets(replace(build_config(), sla_policy=None), TicketPriority.P1)


def test_response_longer_than_resolution_is_rejected():
    config = build_config(targets={TicketPriority.P1: (300, 240)})
    with pytest.raises(SlaConfigurationError):
        resolve_targets(config, TicketPriority.P1)


@pytest.mark.parametrize("threshold", [0.0, 1.5])
def test_threshold_outside_unit_interval_is_rejected(threshold):
    with pytest.raises(SlaConfigurationError):
        resolve_targets(build_config(warning_threshold=threshold), TicketPriority.P1)
