# taskmarket/services/budget.py
"""
Task budgets.

A budget is one of three shapes, stored across the ``budget_*`` columns of a
task row:

* ``fixed``  -> amount
* ``range``  -> min and max
* ``hourly`` -> amount, read as a per-hour rate

Display strings and the suggested offer are derived on the fly and never
stored.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from ..exceptions import ValidationError

BUDGET_TYPES = ("fixed", "range", "hourly")

_CENTS = Decimal("0.01")
# Numeric(10, 2) columns
MAX_AMOUNT = Decimal("99999999.99")


def parse_amount(val, *, field: str = "amount") -> Optional[Decimal]:
    """Blank -> None, anything else must be a finite decimal."""
    if val is None:
        return None
    if isinstance(val, str):
        val = val.replace(",", "").strip()
        if not val:
            return None
    if isinstance(val, bool):
        raise ValidationError(f"{field} must be a number.")
    try:
        d = Decimal(str(val))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number.")
    if not d.is_finite():
        raise ValidationError(f"{field} must be a number.")
    if abs(d) > MAX_AMOUNT:
        raise ValidationError(f"{field} is too large.")
    try:
        return d.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number.")


def format_amount(d: Decimal) -> str:
    # 50.00 -> "50", 49.50 -> "49.50"
    if d == d.to_integral_value():
        return str(int(d))
    return f"{d.quantize(_CENTS)}"


def as_number(d: Optional[Decimal]):
    """JSON friendly number: whole values as int, the rest as float."""
    if d is None:
        return None
    if d == d.to_integral_value():
        return int(d)
    return float(d)


class Budget:
    __slots__ = ("type", "amount", "min", "max")

    def __init__(self, type: str, amount=None, min=None, max=None):
        self.type = (type or "").strip().lower()
        self.amount = parse_amount(amount, field="Budget amount")
        self.min = parse_amount(min, field="Minimum budget")
        self.max = parse_amount(max, field="Maximum budget")
        self._validate()

    # -----------------
    # Constructors
    # -----------------

    @classmethod
    def fixed(cls, amount) -> "Budget":
        return cls("fixed", amount=amount)

    @classmethod
    def range(cls, min, max) -> "Budget":
        return cls("range", min=min, max=max)

    @classmethod
    def hourly(cls, rate) -> "Budget":
        return cls("hourly", amount=rate)

    @classmethod
    def from_row(cls, row) -> "Budget":
        return cls(row.budget_type, amount=row.budget_amount, min=row.budget_min, max=row.budget_max)

    # -----------------
    # Rules
    # -----------------

    def _validate(self):
        if self.type not in BUDGET_TYPES:
            raise ValidationError("Budget type must be fixed, range or hourly.")

        if self.type in ("fixed", "hourly"):
            if self.amount is None:
                raise ValidationError("Please enter a budget amount.")
            if self.min is not None or self.max is not None:
                raise ValidationError("A fixed or hourly budget takes a single amount, not a range.")
            if self.amount <= 0:
                raise ValidationError("Budget amount must be greater than zero.")
            return

        if self.min is None or self.max is None:
            raise ValidationError("Please enter a budget range.")
        if self.amount is not None:
            raise ValidationError("A budget range takes a minimum and a maximum, not an amount.")
        if self.min <= 0:
            raise ValidationError("Budget amounts must be greater than zero.")
        if self.min > self.max:
            raise ValidationError("Minimum budget cannot exceed the maximum.")

    # -----------------
    # Encoding
    # -----------------

    def to_columns(self) -> dict:
        return {
            "budget_type": self.type,
            "budget_amount": self.amount,
            "budget_min": self.min,
            "budget_max": self.max,
        }

    def to_json(self) -> dict:
        return {k: (as_number(v) if k != "budget_type" else v) for k, v in self.to_columns().items()}

    # -----------------
    # Derived values
    # -----------------

    def display(self) -> str:
        if self.type == "fixed":
            return f"${format_amount(self.amount)}"
        if self.type == "range":
            return f"${format_amount(self.min)}-{format_amount(self.max)}"
        return f"${format_amount(self.amount)}/hr"

    def suggested_amount(self) -> Decimal:
        if self.type == "range":
            return ((self.min + self.max) / 2).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return self.amount

    def __eq__(self, other):
        if not isinstance(other, Budget):
            return NotImplemented
        return self.to_columns() == other.to_columns()

    def __repr__(self):
        return f"<Budget {self.display()} ({self.type})>"
