"""Domain models and the cost-basis / capital-gains engine.

This package contains in-memory (Pydantic) models describing the transaction
ledger, tax lots and taxable events, plus the pure functions that turn a
ledger snapshot into a tax report. They are independent from persistence
models so that business logic and testing can evolve without DB coupling.
"""

__all__ = [
    "brackets",
    "errors",
    "income",
    "ledger",
    "lots",
    "report",
    "tax_events",
    "tax_summary",
    "wash_sale",
]
