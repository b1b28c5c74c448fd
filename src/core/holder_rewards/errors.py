"""Exception types for the holder rewards engine.

Every error carries a stable ``code`` string. ``step()`` in ``engine.py``
reports the code as the rejection reason; ``step_or_raise()`` re-raises the
typed error so callers can branch on the kind of failure.
"""

from __future__ import annotations


class RewardsError(Exception):
    """Base class for all holder rewards failures."""

    code: str = "rewards_error"

    def __init__(self, code: str | None = None, message: str | None = None) -> None:
        if code is not None:
            self.code = code
        super().__init__(message or self.code)


class AddressMismatchError(RewardsError):
    """A record does not derive from the expected seeds."""

    code = "incorrect_address"


class AuthorizationError(RewardsError):
    """Record owned by another program, or a signer requirement is not met."""

    code = "unauthorized"


class MalformedRecordError(RewardsError):
    """Stored bytes do not decode to the fixed record layout."""

    code = "malformed_record"


class AlreadyInitializedError(RewardsError):
    code = "already_initialized"


class NotInitializedError(RewardsError):
    code = "not_initialized"


class ArithmeticOverflowError(RewardsError):
    """A checked operation left its integer width."""

    code = "arithmetic_overflow"


class InsufficientFundsError(RewardsError):
    """External balance too low for a deposit, or pool excess too low for a payout."""

    code = "insufficient_funds"


class InvariantViolationError(RewardsError):
    """Bookkeeping is inconsistent; distinct from bad caller input."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(
            f"invariant:{','.join(violations)}",
            f"invariant violations: {', '.join(violations)}",
        )


class GuardError(RewardsError):
    """A command's precondition on caller input is not satisfied."""

    code = "guard"


class ParamDomainError(GuardError):
    """A command parameter lies outside its declared domain."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"param_domain:{field}")
