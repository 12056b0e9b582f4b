"""
DealershipConfig schema.

Frozen dataclasses the loader parses YAML into.  Every field has a default
that reproduces the dealership's standard behavior, so an empty YAML file
is a valid configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite:///dealership.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    sqlite_busy_timeout: int = 30


@dataclass(frozen=True)
class InventoryConfig:
    default_min_stock_level: int = 5
    default_unit: str = "pcs"
    barcode_min_length: int = 3


@dataclass(frozen=True)
class WorkflowConfig:
    """Work order behavior switches."""

    allow_complete_from_pending: bool = True
    inspection_description_template: str = (
        "Initial inspection and repair assessment for purchased vehicle "
        "{brand} {model} {year}"
    )


@dataclass(frozen=True)
class NumberingConfig:
    vehicle_prefix: str = "VH"
    vehicle_width: int = 4
    work_order_prefix: str = "WO"
    work_order_width: int = 4
    sales_invoice_prefix: str = "INV"
    sales_invoice_width: int = 4
    purchase_supplier_prefix: str = "PUR-SUP"
    purchase_customer_prefix: str = "PUR-CUS"
    purchase_invoice_width: int = 4
    spare_part_prefix: str = "SP"
    spare_part_width: int = 6


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class DealershipConfig:
    """
    Complete runtime configuration.

    ``checksum`` identifies the source YAML (empty for in-code defaults).
    """

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    inventory: InventoryConfig = field(default_factory=InventoryConfig)
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    numbering: NumberingConfig = field(default_factory=NumberingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    checksum: str = ""
