"""Services package for the restore points manager."""

from .maintenance_service import MaintenanceService

__all__ = [
    "MaintenanceService",
]
