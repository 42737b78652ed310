from decimal import Decimal

import pytest

from config import AppSettings
from domain.lots import CostBasisMethod


def test_settings_defaults() -> None:
    settings = AppSettings(_env_file=None)

    assert settings.cost_basis_method == CostBasisMethod.FIFO
    assert settings.tax_bracket == Decimal("22")
    assert settings.state is None


def test_settings_read_prefixed_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CRYPTO_TAX_COST_BASIS_METHOD", "HIFO")
    monkeypatch.setenv("CRYPTO_TAX_TAX_BRACKET", "32")
    monkeypatch.setenv("CRYPTO_TAX_STATE", "NY")

    settings = AppSettings(_env_file=None)

    assert settings.cost_basis_method == CostBasisMethod.HIFO
    assert settings.tax_bracket == Decimal("32")
    assert settings.state == "NY"
