"""ServiceDue dataclass for calculated service status."""

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from .status import Status

if TYPE_CHECKING:
    from .maintenance_record import MaintenanceRecord


@dataclass
class ServiceDue:
    """Calculated due information for a maintenance record."""

    record: "MaintenanceRecord"
    status: Status
    days_remaining: Optional[int] = None
    km_remaining: Optional[float] = None

    @property
    def is_due(self) -> bool:
        return self.status in (Status.OVERDUE, Status.DUE_SOON)

    @property
    def label(self) -> str:
        return self.status.label
