from __future__ import annotations

from decimal import Decimal


class TaxEngineError(Exception):
    """Base class for failures reported by the tax engine."""


class ValidationError(TaxEngineError):
    def __init__(self, message: str, *, transaction_id: str | None = None) -> None:
        super().__init__(message)
        self.transaction_id = transaction_id


class InsufficientLotsError(TaxEngineError):
    def __init__(self, *, asset_symbol: str, shortfall: Decimal, transaction_id: str) -> None:
        self.asset_symbol = asset_symbol
        self.shortfall = shortfall
        self.transaction_id = transaction_id
        super().__init__(
            f"Not enough open lots for asset={asset_symbol} transaction={transaction_id} shortfall={shortfall}"
        )


class NoTransactionsForYearError(TaxEngineError):
    def __init__(self, tax_year: int) -> None:
        self.tax_year = tax_year
        super().__init__(f"No taxable events or income found for tax year {tax_year}")


class UnsupportedStateError(TaxEngineError):
    def __init__(self, state: str) -> None:
        self.state = state
        super().__init__(f"No tax rate known for state {state!r}")
