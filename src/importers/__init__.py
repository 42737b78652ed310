"""Importers that turn normalized files into validated ledger transactions."""

from importers.transactions_csv import load_transactions

__all__ = ["load_transactions"]
