"""
Balance projection for the two ledger domains.

A transaction never stores authored balances. ``amount_paid``,
``remaining_amount``, ``overpaid_amount`` (and the transport pair on
purchases) are always the fold of the transaction's base amount with the
full list of its live ledger entries, so re-running the projection over
the same history gives the same numbers.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union
import enum

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Coerce to a two-place Decimal. ``None`` counts as zero."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class SaleStatus(enum.Enum):
    """Payment state of a sale"""
    PENDING = "pending"     # nothing paid
    PARTIAL = "partial"     # something paid, balance left
    PAID = "paid"           # nothing remaining


class PurchaseStatus(enum.Enum):
    """Payment state of a supplier purchase"""
    PENDING = "pending"
    COMPLETE = "complete"   # product and transport both settled
    OVERPAID = "overpaid"


@dataclass(frozen=True)
class SalePaymentEvent:
    """A sale ledger entry as the projector sees it. Refunds are negative."""
    amount: Decimal

    @property
    def primary(self) -> Decimal:
        return to_money(self.amount)

    @property
    def secondary(self) -> Decimal:
        return ZERO


@dataclass(frozen=True)
class PurchasePaymentEvent:
    """A purchase ledger entry: product payment plus transport payment."""
    payment_amount: Decimal
    transport_payment: Decimal = ZERO

    @property
    def primary(self) -> Decimal:
        return to_money(self.payment_amount)

    @property
    def secondary(self) -> Decimal:
        return to_money(self.transport_payment)


PaymentEvent = Union[SalePaymentEvent, PurchasePaymentEvent]


@dataclass(frozen=True)
class BalanceProjection:
    amount_paid: Decimal
    remaining_amount: Decimal
    overpaid_amount: Decimal
    secondary_paid: Decimal = ZERO
    secondary_remaining: Decimal = ZERO
    secondary_overpaid: Decimal = ZERO


def _split(base: Decimal, paid: Decimal):
    remaining = max(ZERO, base - paid)
    overpaid = max(ZERO, paid - base)
    return remaining, overpaid


def project(
    base_amount,
    secondary_base_amount=None,
    entries: Optional[Iterable[PaymentEvent]] = None,
) -> BalanceProjection:
    """
    Fold a base amount (and optional secondary base) with ledger entries.

    amount_paid is the signed sum of the entries. remaining and overpaid are
    its clamped differences from the base, so at most one of them is
    non-zero. The secondary pair is computed the same way, independently.
    """
    base = to_money(base_amount)
    secondary_base = to_money(secondary_base_amount)

    paid = ZERO
    secondary_paid = ZERO
    for entry in entries or ():
        paid += entry.primary
        secondary_paid += entry.secondary

    remaining, overpaid = _split(base, paid)
    secondary_remaining, secondary_overpaid = _split(secondary_base, secondary_paid)

    return BalanceProjection(
        amount_paid=paid,
        remaining_amount=remaining,
        overpaid_amount=overpaid,
        secondary_paid=secondary_paid,
        secondary_remaining=secondary_remaining,
        secondary_overpaid=secondary_overpaid,
    )


def sale_status(projection: BalanceProjection) -> SaleStatus:
    if projection.remaining_amount == ZERO:
        return SaleStatus.PAID
    if projection.amount_paid > ZERO:
        return SaleStatus.PARTIAL
    return SaleStatus.PENDING


def purchase_status(projection: BalanceProjection) -> PurchaseStatus:
    """
    ``complete`` once goods and transport are both settled, even when the
    goods were overpaid: the surplus stays visible in ``overpaid_amount``.
    ``overpaid`` therefore only shows while transport is still owed.
    """
    if projection.remaining_amount == ZERO and projection.secondary_remaining == ZERO:
        return PurchaseStatus.COMPLETE
    if projection.overpaid_amount > ZERO:
        return PurchaseStatus.OVERPAID
    return PurchaseStatus.PENDING
