"""
Role policy engine.

Pure decisions over (actor role, target role, action). Nothing here touches
the store; callers look the roles up and pass them in.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from app.config.permissions_config import GROUP_ACTIONS
from app.core.errors import AlreadyMember, Forbidden, NotFound
from app.modules.memberships.models import DenialReason, GroupAction, Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolicyDecision:
    allowed: bool
    reason: Optional[DenialReason] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = PolicyDecision(True)


def _deny(reason: DenialReason) -> PolicyDecision:
    return PolicyDecision(False, reason)


def evaluate(
    actor_role: Optional[Role],
    target_role: Optional[Role],
    action: GroupAction,
    is_actor_target_same: bool = False,
    is_target_creator: bool = False,
) -> PolicyDecision:
    """Decide whether `actor_role` may perform `action` on a target holding `target_role`.

    A role of None means "not a member of the group".
    """
    rule = GROUP_ACTIONS[GroupAction(action).value]

    if actor_role is None:
        return _deny(DenialReason.NOT_A_MEMBER)
    if Role(actor_role).value not in rule["roles"]:
        return _deny(DenialReason.INSUFFICIENT_ROLE)
    if is_actor_target_same and not rule.get("allow_self", True):
        return _deny(DenialReason.SELF_TARGET)
    if is_target_creator and rule.get("protect_creator", False):
        return _deny(DenialReason.TARGET_IS_CREATOR)

    expected_target = rule.get("target")
    if expected_target == "non_member" and target_role is not None:
        return _deny(DenialReason.ALREADY_MEMBER)
    if expected_target == "member":
        if target_role is None:
            return _deny(DenialReason.TARGET_NOT_MEMBER)
        allowed_targets = rule.get("target_roles")
        if allowed_targets is not None and Role(target_role).value not in allowed_targets:
            return _deny(DenialReason.INVALID_TRANSITION)

    return ALLOW


def can_perform(
    actor_role: Optional[Role],
    target_role: Optional[Role],
    action: GroupAction,
    is_actor_target_same: bool = False,
    is_target_creator: bool = False,
) -> bool:
    return evaluate(actor_role, target_role, action, is_actor_target_same, is_target_creator).allowed


_DENIAL_MESSAGES = {
    DenialReason.NOT_A_MEMBER: "You must be a member of this group",
    DenialReason.INSUFFICIENT_ROLE: "Your role in this group does not allow this action",
    DenialReason.TARGET_IS_CREATOR: "The group creator cannot be removed and their role cannot be changed",
    DenialReason.SELF_TARGET: "You cannot perform this action on yourself; transfer leadership instead",
    DenialReason.ALREADY_MEMBER: "This user is already a member of the group",
    DenialReason.TARGET_NOT_MEMBER: "The target user is not a member of this group",
    DenialReason.INVALID_TRANSITION: "This role change is not allowed for the member's current role",
}


def raise_for_denial(decision: PolicyDecision, action: GroupAction) -> None:
    """Raise the error matching a denial; do nothing for an allow."""
    if decision.allowed:
        return
    logger.info("Denied %s: %s", GroupAction(action).value, decision.reason.value)
    message = _DENIAL_MESSAGES[decision.reason]
    if decision.reason == DenialReason.ALREADY_MEMBER:
        raise AlreadyMember(message)
    if decision.reason == DenialReason.TARGET_NOT_MEMBER:
        raise NotFound(message)
    raise Forbidden(message, reason=decision.reason.value)


def enforce(
    actor_role: Optional[Role],
    target_role: Optional[Role],
    action: GroupAction,
    is_actor_target_same: bool = False,
    is_target_creator: bool = False,
) -> None:
    raise_for_denial(
        evaluate(actor_role, target_role, action, is_actor_target_same, is_target_creator),
        action,
    )
