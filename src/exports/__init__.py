"""Read-only renderings of a ``TaxReport`` for downloads and tax software."""

from .form8949 import Form8949Line, export_form8949_csv, form8949_lines
from .history import export_transaction_history_csv
from .income import export_income_csv
from .summary import export_tax_summary_csv
from .txf import export_txf

__all__ = [
    "Form8949Line",
    "export_form8949_csv",
    "export_income_csv",
    "export_tax_summary_csv",
    "export_transaction_history_csv",
    "export_txf",
    "form8949_lines",
]
