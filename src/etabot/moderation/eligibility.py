from __future__ import annotations

from .models import ActionRequest, Allowed, Denied, DenialReason, Eligibility


class EligibilityChecker:
    """Decides whether a timeout request may go ahead.

    Pure: the answer depends only on the request and the target role, never
    on history or cooldowns. Checks run in a fixed order and the first
    failing one is reported.
    """

    def evaluate(self, request: ActionRequest, target_role_id: int) -> Eligibility:
        if request.target_id == request.executor_id:
            return Denied(DenialReason.SELF_TARGET)
        if request.target_is_bot:
            return Denied(DenialReason.BOT_TARGET)
        if target_role_id not in request.target_role_ids:
            return Denied(DenialReason.TARGET_NOT_ELIGIBLE)
        # Target-role holders may not act, so targets cannot retaliate.
        if target_role_id in request.executor_role_ids:
            return Denied(DenialReason.EXECUTOR_INELIGIBLE)
        if not request.bot_can_moderate:
            return Denied(DenialReason.INSUFFICIENT_BOT_PERMISSION)
        return Allowed()
