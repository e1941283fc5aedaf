"""Status enum for maintenance urgency levels."""

from enum import Enum


class Status(Enum):
    """Maintenance status categories. Lower value = more urgent."""

    OVERDUE = 1
    DUE_SOON = 2
    OK = 3

    @property
    def label(self) -> str:
        """Short machine-friendly label (overdue, due-soon, ok)."""
        return self.name.lower().replace("_", "-")

    @property
    def badge(self) -> str:
        """Badge text shown next to a maintenance record."""
        return _BADGES[self]


_BADGES = {
    Status.OVERDUE: "Atrasada",
    Status.DUE_SOON: "Em breve",
    Status.OK: "Em dia",
}
