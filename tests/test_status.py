#!/usr/bin/env python3
"""Tests for Status enum."""

from kmcars import Status


class TestStatus:
    """Tests for Status enum."""

    def test_ordering_by_urgency(self):
        """Lower value means more urgent."""
        assert Status.OVERDUE.value < Status.DUE_SOON.value < Status.OK.value

    def test_labels(self):
        assert Status.OVERDUE.label == "overdue"
        assert Status.DUE_SOON.label == "due-soon"
        assert Status.OK.label == "ok"

    def test_badges(self):
        assert Status.OVERDUE.badge == "Atrasada"
        assert Status.DUE_SOON.badge == "Em breve"
        assert Status.OK.badge == "Em dia"

    def test_sort_by_value(self):
        statuses = [Status.OK, Status.OVERDUE, Status.DUE_SOON]
        assert sorted(statuses, key=lambda s: s.value) == [
            Status.OVERDUE,
            Status.DUE_SOON,
            Status.OK,
        ]
