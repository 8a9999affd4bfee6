# timeleave_api/services/balance_counters.py
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal, ROUND_HALF_UP

from timeleave_api.common.errors import DomainStateError, InsufficientBalanceError, ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def q2(value) -> Decimal:
    """Round a day/hour quantity to 2 decimals, half-up."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class BalanceCounters:
    """
    The seven stored counters of a leave balance.

    current and available are derived, so they can never drift:
        current   = opening + earned - used - forfeited - converted
        available = current - pending
    Mutators return a new value and refuse any move that would break
    pending >= 0 or available >= 0.
    """
    opening: Decimal = ZERO
    earned: Decimal = ZERO
    used: Decimal = ZERO
    forfeited: Decimal = ZERO
    converted: Decimal = ZERO
    carried_over: Decimal = ZERO
    pending: Decimal = ZERO

    @classmethod
    def of(cls, **kw) -> "BalanceCounters":
        return cls(**{k: q2(v) for k, v in kw.items()})

    @classmethod
    def opened(cls, opening, earned) -> "BalanceCounters":
        """Fresh year: opening is the carry-over, earned the prorated entitlement."""
        opening, earned = q2(opening), q2(earned)
        if opening < 0 or earned < 0:
            raise ValidationError("Opening and earned credits cannot be negative.", field="opening_balance")
        return cls(opening=opening, earned=earned, carried_over=opening)

    @property
    def current(self) -> Decimal:
        return q2(self.opening + self.earned - self.used - self.forfeited - self.converted)

    @property
    def available(self) -> Decimal:
        return q2(self.current - self.pending)

    @staticmethod
    def _quantity(quantity) -> Decimal:
        q = q2(quantity)
        if q <= 0:
            raise ValidationError("Quantity must be greater than zero.", field="quantity")
        return q

    def reserve(self, quantity) -> "BalanceCounters":
        q = self._quantity(quantity)
        if self.available < q:
            raise InsufficientBalanceError()
        return replace(self, pending=q2(self.pending + q))

    def release(self, quantity) -> "BalanceCounters":
        q = self._quantity(quantity)
        if self.pending < q:
            raise DomainStateError("Leave balance reservation is inconsistent. Please contact HR.",
                                   code="RESERVATION_INCONSISTENT")
        return replace(self, pending=q2(self.pending - q))

    def deduct(self, quantity) -> "BalanceCounters":
        """Move a reserved quantity from pending into used."""
        q = self._quantity(quantity)
        if self.pending < q:
            raise DomainStateError("Leave balance reservation is inconsistent. Please contact HR.",
                                   code="RESERVATION_INCONSISTENT")
        return replace(self, pending=q2(self.pending - q), used=q2(self.used + q))

    def as_dict(self) -> dict:
        return {
            "opening_balance": float(self.opening),
            "credits_earned": float(self.earned),
            "credits_used": float(self.used),
            "credits_forfeited": float(self.forfeited),
            "credits_converted": float(self.converted),
            "credits_carried_over": float(self.carried_over),
            "current_balance": float(self.current),
            "pending_requests": float(self.pending),
            "available_balance": float(self.available),
        }
