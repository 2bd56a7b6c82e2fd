"""Domain errors raised by the split ledger services.

Each error carries a stable ``kind`` and a ``context`` dict so the HTTP layer
can render a message without re-deriving which split, user or template was
involved. Handlers in ``app.main`` turn them into JSON responses.
"""
from decimal import Decimal
from typing import Any, Dict


class SplitError(Exception):
    kind = "split_error"
    status_code = 400

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.kind, "detail": self.message}
        for key, value in self.context.items():
            if isinstance(value, Decimal):
                value = str(value)
            elif hasattr(value, "value"):
                value = value.value
            payload[key] = value
        return payload


class InvalidStrategy(SplitError):
    kind = "invalid_strategy"

    def __init__(self, strategy):
        super().__init__(f"Unknown split strategy: {strategy!r}", strategy=str(strategy))


class EmptyParticipants(SplitError):
    kind = "empty_participants"

    def __init__(self):
        super().__init__("A split needs at least one participant")


class InvalidAmount(SplitError):
    kind = "invalid_amount"


class DuplicateParticipant(SplitError):
    kind = "duplicate_participant"

    def __init__(self, user_id):
        super().__init__(f"User {user_id} appears more than once in the split", user_id=user_id)


class PercentageSumMismatch(SplitError):
    kind = "percentage_sum_mismatch"

    def __init__(self, total_percentage: Decimal):
        super().__init__(
            "Percentages must add up to 100",
            total_percentage=total_percentage,
        )


class AmountSumMismatch(SplitError):
    kind = "amount_sum_mismatch"

    def __init__(self, split_sum: Decimal, total_amount: Decimal):
        super().__init__(
            "Sum of split amounts must equal total amount",
            split_sum=split_sum,
            total_amount=total_amount,
        )


class TemplateMemberNotFound(SplitError):
    kind = "template_member_not_found"
    status_code = 409

    def __init__(self, template_id, user_id):
        super().__init__(
            f"User {user_id} from template {template_id} is no longer a group member",
            template_id=template_id,
            user_id=user_id,
        )


class InvalidTransition(SplitError):
    kind = "invalid_transition"
    status_code = 409

    def __init__(self, split_id, user_id, current, target):
        current = getattr(current, "value", current)
        target = getattr(target, "value", target)
        super().__init__(
            f"Participant {user_id} cannot move from {current} to {target}",
            split_id=split_id,
            user_id=user_id,
            current_status=current,
            target_status=target,
        )


class NotFound(SplitError):
    kind = "not_found"
    status_code = 404

    def __init__(self, resource: str, resource_id, **context: Any):
        super().__init__(
            f"{resource.capitalize()} {resource_id} not found",
            resource=resource,
            resource_id=resource_id,
            **context,
        )


class PersistenceError(SplitError):
    kind = "persistence_error"
    status_code = 500

    def __init__(self, message: str = "Could not save split changes", **context: Any):
        super().__init__(message, **context)
