"""Inventory ledger: copy counts and derived book status."""

from .ledger import InventoryDiscrepancy, InventoryLedger

__all__ = ["InventoryDiscrepancy", "InventoryLedger"]
