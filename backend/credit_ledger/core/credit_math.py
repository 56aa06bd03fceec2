"""Credit Math — integer-only conversion between real money and credits.

Invariants:
    - Money is carried as int minor units (cents); credits are int
    - Conversion never rounds up: partial credits are dropped
    - Pure functions, no settings lookup (callers pass the rate in)
"""

from decimal import Decimal, ROUND_DOWN

from credit_ledger.core.domain_types import Credits, MoneyCents
from credit_ledger.core.errors import InvalidAmountError

CENTS_PER_UNIT = 100

# Sample amounts shown next to the rates table
RATE_EXAMPLE_AMOUNTS = (1, 10, 50, 100)


def money_to_cents(amount: Decimal) -> MoneyCents:
    """Convert a decimal money amount (at most 2 places) to cents."""
    cents = (amount * CENTS_PER_UNIT).quantize(Decimal("1"), rounding=ROUND_DOWN)
    if cents != amount * CENTS_PER_UNIT:
        raise InvalidAmountError("Amount cannot have more than 2 decimal places")
    return MoneyCents(int(cents))


def credits_for_cents(cents: MoneyCents, credits_per_unit: int) -> Credits:
    """Credits bought by `cents` at `credits_per_unit` credits per currency unit."""
    return Credits(cents * credits_per_unit // CENTS_PER_UNIT)


def cents_to_display(cents: int) -> str:
    """Render cents as a plain decimal string ("12.50")."""
    return str((Decimal(cents) / CENTS_PER_UNIT).quantize(Decimal("0.01")))


def validate_topup_cents(cents: int, minimum_units: int) -> None:
    """Reject top-ups below the minimum amount."""
    if cents < minimum_units * CENTS_PER_UNIT:
        raise InvalidAmountError(
            f"Minimum top-up amount is {minimum_units}",
        )


def build_rates_table(
    credits_per_unit: int, minimum_amount: int, currency: str,
) -> dict:
    """Static conversion table served to clients."""
    return {
        "rates": {
            "credits_per_unit": credits_per_unit,
            "minimum_amount": minimum_amount,
            "currency": currency,
        },
        "examples": [
            {"amount": amount, "credits": amount * credits_per_unit}
            for amount in RATE_EXAMPLE_AMOUNTS
        ],
    }
