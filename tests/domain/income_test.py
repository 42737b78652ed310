from decimal import Decimal

from domain.income import classify_income
from domain.ledger import IncomeKind, TransactionKind
from tests.constants import ATOM, UNI
from tests.helpers.transactions import buy, make_tx, utc


def test_staking_and_other_income_are_kept_apart() -> None:
    ledger = [
        make_tx(TransactionKind.STAKING_REWARD, "10", "8", utc(2023, 3, 1), asset=ATOM, tx_id="stake"),
        make_tx(
            TransactionKind.TRANSFER_IN,
            "100",
            "4.5",
            utc(2023, 2, 1),
            asset=UNI,
            income_kind=IncomeKind.AIRDROP,
            tx_id="drop",
        ),
        buy("1", "100", utc(2023, 1, 1)),
        make_tx(TransactionKind.TRANSFER_IN, "1", "50", utc(2023, 1, 5)),
    ]

    summary = classify_income(ledger)

    assert summary.staking_income == Decimal("80")
    assert summary.other_income == Decimal("450")
    assert summary.total == Decimal("530")
    assert [event.id for event in summary.events] == ["drop", "stake"]
    assert summary.events[0].income_kind == IncomeKind.AIRDROP


def test_income_outside_tax_year_is_skipped() -> None:
    ledger = [
        make_tx(TransactionKind.STAKING_REWARD, "1", "8", utc(2022, 12, 31), asset=ATOM),
        make_tx(TransactionKind.STAKING_REWARD, "2", "9", utc(2023, 1, 1), asset=ATOM, tx_id="in-year"),
    ]

    summary = classify_income(ledger, tax_year=2023)

    assert [event.id for event in summary.events] == ["in-year"]
    assert summary.events[0].fair_market_value_usd == Decimal("18")
    assert summary.staking_income == Decimal("18")
