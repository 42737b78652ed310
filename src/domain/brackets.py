"""Federal and state rate tables used for tax estimates (2024 single filer)."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from .errors import UnsupportedStateError


@dataclass(frozen=True)
class Bracket:
    lower: Decimal
    upper: Decimal | None
    rate: Decimal


SHORT_TERM_BRACKETS: tuple[Bracket, ...] = (
    Bracket(Decimal("0"), Decimal("11600"), Decimal("0.10")),
    Bracket(Decimal("11600"), Decimal("47150"), Decimal("0.12")),
    Bracket(Decimal("47150"), Decimal("100525"), Decimal("0.22")),
    Bracket(Decimal("100525"), Decimal("191950"), Decimal("0.24")),
    Bracket(Decimal("191950"), Decimal("243725"), Decimal("0.32")),
    Bracket(Decimal("243725"), Decimal("609350"), Decimal("0.35")),
    Bracket(Decimal("609350"), None, Decimal("0.37")),
)

LONG_TERM_BRACKETS: tuple[Bracket, ...] = (
    Bracket(Decimal("0"), Decimal("47025"), Decimal("0")),
    Bracket(Decimal("47025"), Decimal("518900"), Decimal("0.15")),
    Bracket(Decimal("518900"), None, Decimal("0.20")),
)

# Flat approximations of each state's top rate on capital gains.
STATE_TAX_RATES: dict[str, Decimal] = {
    "CA": Decimal("0.133"),
    "NY": Decimal("0.0882"),
    "NJ": Decimal("0.1075"),
    "HI": Decimal("0.11"),
    "MN": Decimal("0.0985"),
    "OR": Decimal("0.099"),
    "VT": Decimal("0.0875"),
    "IA": Decimal("0.06"),
    "WI": Decimal("0.0765"),
    "ME": Decimal("0.0715"),
    "SC": Decimal("0.07"),
    "CT": Decimal("0.0699"),
    "MT": Decimal("0.0675"),
    "NE": Decimal("0.0664"),
    "ID": Decimal("0.06"),
    "WV": Decimal("0.065"),
    "AR": Decimal("0.055"),
    "GA": Decimal("0.055"),
    "MD": Decimal("0.055"),
    "MA": Decimal("0.05"),
    "KY": Decimal("0.05"),
    "NC": Decimal("0.0525"),
    "OK": Decimal("0.05"),
    "VA": Decimal("0.0575"),
    "LA": Decimal("0.0425"),
    "MS": Decimal("0.05"),
    "AL": Decimal("0.05"),
    "MO": Decimal("0.054"),
    "KS": Decimal("0.057"),
    "MI": Decimal("0.0425"),
    "IN": Decimal("0.0315"),
    "CO": Decimal("0.044"),
    "UT": Decimal("0.0485"),
    "AZ": Decimal("0.025"),
    "IL": Decimal("0.0495"),
    "OH": Decimal("0"),
    "PA": Decimal("0.0307"),
    "ND": Decimal("0.029"),
    "TX": Decimal("0"),
    "FL": Decimal("0"),
    "WA": Decimal("0"),
    "NV": Decimal("0"),
    "WY": Decimal("0"),
    "SD": Decimal("0"),
    "TN": Decimal("0"),
    "AK": Decimal("0"),
    "NH": Decimal("0"),
}


def progressive_tax(amount: Decimal, brackets: Sequence[Bracket]) -> Decimal:
    """Tax on ``amount`` with each slice taxed at its own bracket rate."""
    if amount <= 0:
        return Decimal(0)

    tax = Decimal(0)
    for bracket in brackets:
        if amount <= bracket.lower:
            break
        top = amount if bracket.upper is None else min(amount, bracket.upper)
        tax += (top - bracket.lower) * bracket.rate
    return tax


def normalize_state(state: str) -> str:
    return state.strip().upper()


def state_rate(state: str) -> Decimal:
    code = normalize_state(state)
    rate = STATE_TAX_RATES.get(code)
    if rate is None:
        raise UnsupportedStateError(code)
    return rate
