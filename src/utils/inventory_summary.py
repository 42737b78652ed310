from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from domain.lots import TaxLot

from .formatting import format_currency, format_decimal


@dataclass
class AssetInventorySummary:
    asset_symbol: str
    quantity: Decimal
    cost_basis: Decimal
    open_lots: int


def compute_inventory_summary(open_lots: Iterable[TaxLot]) -> list[AssetInventorySummary]:
    """Held quantity and remaining basis per asset from the open lots."""
    totals: dict[str, AssetInventorySummary] = defaultdict(
        lambda: AssetInventorySummary(asset_symbol="", quantity=Decimal(0), cost_basis=Decimal(0), open_lots=0)
    )
    for lot in open_lots:
        entry = totals[lot.asset_symbol]
        entry.asset_symbol = lot.asset_symbol
        entry.quantity += lot.remaining_amount
        entry.cost_basis += lot.remaining_cost_basis
        entry.open_lots += 1

    return [totals[symbol] for symbol in sorted(totals)]


def render_inventory_summary(assets: Iterable[AssetInventorySummary]) -> None:
    assets_list = list(assets)
    print("Open inventory:")
    if not assets_list:
        print("  (empty)")
        return

    quantity_label = "Quantity"
    basis_label = "Basis USD"

    rows: list[tuple[str, str, str, str]] = []
    for asset in assets_list:
        rows.append(
            (asset.asset_symbol, format_decimal(asset.quantity), format_currency(asset.cost_basis), str(asset.open_lots))
        )

    asset_width = max(len("Asset"), max((len(asset) for asset, _, _, _ in rows), default=0))
    quantity_width = max(len(quantity_label), max((len(qty) for _, qty, _, _ in rows), default=0))
    basis_width = max(len(basis_label), max((len(basis) for _, _, basis, _ in rows), default=0))
    lots_width = max(len("Lots"), max((len(lots) for _, _, _, lots in rows), default=0))

    header = (
        f"{'Asset':<{asset_width}} {quantity_label:>{quantity_width}} "
        f"{basis_label:>{basis_width}} {'Lots':>{lots_width}}"
    )

    lines = [header, "-" * len(header)]

    for asset_symbol, quantity_text, basis_text, lots_text in rows:
        lines.append(
            f"{asset_symbol:<{asset_width}} {quantity_text:>{quantity_width}} "
            f"{basis_text:>{basis_width}} {lots_text:>{lots_width}}"
        )

    lines.append("-" * len(header))
    print("\n".join(lines))
