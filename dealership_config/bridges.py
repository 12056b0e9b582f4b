"""
Config -> Kernel bridges.

Functions that convert a ``DealershipConfig`` into kernel inputs.  They live
here because the kernel must never import ``dealership_config``.

Usage:
    from dealership_config import get_active_config
    from dealership_config.bridges import bootstrap

    config = get_active_config()
    settings = bootstrap(config)
    ...
    AcquisitionFlow(session, clock=SystemClock(), settings=settings)
"""

from __future__ import annotations

from dealership_config.schema import DealershipConfig
from dealership_kernel.db.engine import init_engine_from_url
from dealership_kernel.db.immutability import register_immutability_listeners
from dealership_kernel.domain.settings import KernelSettings, NumberingScheme
from dealership_kernel.logging_config import configure_logging, get_logger

logger = get_logger("config.bridges")


def build_kernel_settings(config: DealershipConfig) -> KernelSettings:
    """Translate the inventory, workflow and numbering sections."""
    n = config.numbering
    return KernelSettings(
        numbering=NumberingScheme(
            vehicle_prefix=n.vehicle_prefix,
            vehicle_width=n.vehicle_width,
            work_order_prefix=n.work_order_prefix,
            work_order_width=n.work_order_width,
            sales_invoice_prefix=n.sales_invoice_prefix,
            sales_invoice_width=n.sales_invoice_width,
            purchase_supplier_prefix=n.purchase_supplier_prefix,
            purchase_customer_prefix=n.purchase_customer_prefix,
            purchase_invoice_width=n.purchase_invoice_width,
            spare_part_prefix=n.spare_part_prefix,
            spare_part_width=n.spare_part_width,
        ),
        default_min_stock_level=config.inventory.default_min_stock_level,
        default_unit=config.inventory.default_unit,
        barcode_min_length=config.inventory.barcode_min_length,
        allow_complete_from_pending=config.workflow.allow_complete_from_pending,
        inspection_description_template=config.workflow.inspection_description_template,
    )


def bootstrap(config: DealershipConfig) -> KernelSettings:
    """
    Initialize logging, the engine and the ORM guards from a config.

    Returns the KernelSettings services should be constructed with.
    """
    configure_logging(level=config.logging.level)
    db = config.database
    init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
        sqlite_busy_timeout=db.sqlite_busy_timeout,
    )
    register_immutability_listeners()
    logger.info("kernel_bootstrapped", extra={"checksum": config.checksum})
    return build_kernel_settings(config)
