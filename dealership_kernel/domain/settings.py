"""
Kernel settings -- the tunable constants services consult.

The kernel never reads configuration files.  ``dealership_config.bridges``
translates a loaded ``DealershipConfig`` into a ``KernelSettings``; services
fall back to ``DEFAULT_SETTINGS`` when none is passed.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class NumberingScheme:
    """Prefixes and zero-padded widths for every generated document number."""

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
class KernelSettings:
    numbering: NumberingScheme = field(default_factory=NumberingScheme)
    default_min_stock_level: int = 5
    default_unit: str = "pcs"
    barcode_min_length: int = 3
    # Matches the back office as deployed: pending orders may be closed directly
    allow_complete_from_pending: bool = True
    inspection_description_template: str = (
        "Initial inspection and repair assessment for purchased vehicle "
        "{brand} {model} {year}"
    )


DEFAULT_SETTINGS = KernelSettings()
