"""Slot pricing, discounts and fee breakdowns."""

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum

FEW_LEFT_THRESHOLD = 2
MIN_MULTI_SLOTS = 2
MAX_PERCENTAGE = 100


class DiscountType(StrEnum):
    """How a slot's listed price is reduced."""

    NONE = "none"
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


class InvalidDiscountType(ValueError):
    """Raised when a discount type is not one of the known values."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Unknown discount type: {value!r}")
        self.value = value


class InvalidMultiSlotDiscount(ValueError):
    """The session's multi-slot discount rule cannot be applied."""

    field = "booking_settings"


def parse_discount_type(value: str | DiscountType) -> DiscountType:
    """Return the discount type for a raw value or raise InvalidDiscountType."""
    try:
        return DiscountType(value)
    except ValueError as exc:
        raise InvalidDiscountType(value) from exc


def round_yen(value: float) -> int:
    """Round half up to whole yen."""
    return math.floor(value + 0.5)


def discounted_price(
    base: float, discount_type: str | DiscountType, value: float
) -> float:
    """Return the price after applying a discount.

    Percentage values are not clamped here; callers validate them. The result
    is never negative.
    """
    kind = parse_discount_type(discount_type)
    if kind is DiscountType.PERCENTAGE:
        return max(base - base * value / 100, 0)
    if kind is DiscountType.FIXED_AMOUNT:
        return max(base - value, 0)
    return base


def charge_amount(base: float, discount_type: str | DiscountType, value: float) -> int:
    """Return the discounted price rounded half up to whole yen."""
    return round_yen(discounted_price(base, discount_type, value))


@dataclass(frozen=True)
class MultiSlotDiscount:
    """Discount applied to the total when enough slots are booked together."""

    min_slots: int
    discount_type: DiscountType
    discount_value: float

    @classmethod
    def from_settings(
        cls, booking_settings: Mapping[str, object] | None
    ) -> "MultiSlotDiscount | None":
        """Read the rule from a session's booking settings, if configured.

        A rule below two slots is treated as absent. Malformed rules raise
        InvalidMultiSlotDiscount.
        """
        if not booking_settings:
            return None
        raw = booking_settings.get("multi_slot_discount")
        if raw is None:
            return None
        if not isinstance(raw, Mapping):
            raise InvalidMultiSlotDiscount("multi_slot_discount must be an object")
        try:
            min_slots = int(raw.get("min_slots", 0))
            discount_value = float(raw.get("discount_value", 0))
            discount_type = parse_discount_type(str(raw.get("discount_type", "none")))
        except (TypeError, ValueError) as exc:
            raise InvalidMultiSlotDiscount(str(exc)) from exc
        if discount_value < 0:
            raise InvalidMultiSlotDiscount("discount_value must not be negative")
        if discount_type is DiscountType.PERCENTAGE and discount_value > MAX_PERCENTAGE:
            raise InvalidMultiSlotDiscount("percentage must not exceed 100")
        if min_slots < MIN_MULTI_SLOTS:
            return None
        return cls(
            min_slots=min_slots,
            discount_type=discount_type,
            discount_value=discount_value,
        )

    def applies_to(self, slot_count: int) -> bool:
        """Return True when the slot count reaches the threshold."""
        return slot_count >= self.min_slots


def multi_slot_total(
    prices: Iterable[float], rule: MultiSlotDiscount | None = None
) -> int:
    """Sum per-slot prices, applying the multi-slot rule when reached."""
    values = list(prices)
    total = sum(values)
    if rule is not None and rule.applies_to(len(values)):
        total = discounted_price(total, rule.discount_type, rule.discount_value)
    return round_yen(total)


def allocate_total(total: int, prices: Sequence[int]) -> list[int]:
    """Split a charged total across bookings in proportion to their prices.

    Shares are whole yen and always add up to ``total``; the rounding
    remainder goes to the last booking.
    """
    if not prices:
        return []
    subtotal = sum(prices)
    if subtotal == 0:
        shares = [0] * len(prices)
    else:
        shares = [price * total // subtotal for price in prices]
    shares[-1] += total - sum(shares)
    return shares


@dataclass(frozen=True)
class FeeBreakdown:
    """Informational fee split for a charged amount."""

    amount: int
    platform_fee: int
    processor_fee: int
    organizer_payout: int


def fee_breakdown(
    amount: int, platform_fee_rate: float = 0.10, processor_fee_rate: float = 0.036
) -> FeeBreakdown:
    """Split an amount into fees. The payer is always charged the full amount."""
    platform_fee = round_yen(amount * platform_fee_rate)
    processor_fee = round_yen(amount * processor_fee_rate)
    return FeeBreakdown(
        amount=amount,
        platform_fee=platform_fee,
        processor_fee=processor_fee,
        organizer_payout=amount - platform_fee,
    )


class Availability(StrEnum):
    """Remaining-capacity label for a slot or session."""

    AVAILABLE = "available"
    FEW_LEFT = "few_left"
    FULL = "full"


def availability(current_participants: int, max_participants: int) -> Availability:
    """Classify remaining capacity."""
    remaining = max_participants - current_participants
    if remaining <= 0:
        return Availability.FULL
    if remaining <= FEW_LEFT_THRESHOLD:
        return Availability.FEW_LEFT
    return Availability.AVAILABLE
