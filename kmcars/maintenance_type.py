"""MaintenanceType class for service interval definitions."""
from typing import Optional


class MaintenanceType:
    """A kind of service and its default recurrence (interval policy)."""

    def __init__(
            self,
            id: str,
            name: str,
            category: Optional[str] = None,
            default_interval_km: Optional[float] = None,
            default_interval_months: Optional[float] = None,
            description: Optional[str] = None,
    ):
        self.id = id
        self.name = name
        self.category = category
        self.default_interval_km = default_interval_km
        self.default_interval_months = default_interval_months
        self.description = description

    @property
    def has_interval(self) -> bool:
        """True when either a distance or a time interval is defined."""
        return bool(self.default_interval_km) or bool(self.default_interval_months)

    @property
    def interval_display(self) -> str:
        """Interval policy for display, e.g. '10.000 km / 12 meses'."""
        parts = []
        if self.default_interval_km:
            parts.append(f"{self.default_interval_km:,.0f} km".replace(",", "."))
        if self.default_interval_months:
            parts.append(f"{self.default_interval_months:g} meses")
        return " / ".join(parts) if parts else "-"
