from __future__ import annotations

from decimal import Decimal
from functools import cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.lots import CostBasisMethod

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"
DB_FILE = ARTIFACTS_DIR / "crypto_taxes.db"


class AppSettings(BaseSettings):
    db_file: Path = DB_FILE
    exports_dir: Path = ARTIFACTS_DIR / "exports"
    cost_basis_method: CostBasisMethod = CostBasisMethod.FIFO
    tax_bracket: Decimal = Decimal("22")
    state: str | None = None
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CRYPTO_TAX_",
        extra="ignore",
    )


@cache
def config() -> AppSettings:
    return AppSettings()
