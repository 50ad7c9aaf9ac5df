"""
Unit tests for slot metrics normalization and the stored-schema adapter.
"""

import math

import pytest

from core.domain.signup import SlotMetrics, SlotStatus
from core.interfaces.entity_store import Entity
from services.slot_metrics import next_status, normalize_slot_metrics, parse_int, parse_status
from services.slot_schema import (
    new_volunteer_row_key,
    project_from_entity,
    slot_from_entity,
    volunteer_from_entity,
    volunteer_partition,
)


class TestParseInt:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (3, 3),
            ("3", 3),
            (" 7 ", 7),
            ("4 people", 4),
            ("-2", -2),
            (2.9, 2),
            ("abc", None),
            ("", None),
            (None, None),
            (True, None),
            (float("nan"), None),
            (math.inf, None),
            ([3], None),
        ],
    )
    def test_parse_int(self, value, expected):
        assert parse_int(value) == expected


class TestNormalizeCapacity:
    """Capacity is always a positive integer."""

    @pytest.mark.parametrize("raw", ["abc", 0, -3, None, float("nan"), float("inf"), "", True])
    def test_invalid_capacity_defaults_to_one(self, raw):
        assert normalize_slot_metrics({"Capacity": raw}).capacity == 1

    def test_missing_capacity_defaults_to_one(self):
        assert normalize_slot_metrics({}).capacity == 1

    def test_string_capacity_parsed(self):
        assert normalize_slot_metrics({"Capacity": "5"}).capacity == 5

    def test_pascal_case_wins_over_camel_case(self):
        metrics = normalize_slot_metrics(
            {"Capacity": 4, "capacity": 9, "FilledCount": 1, "filledCount": 3}
        )
        assert metrics == SlotMetrics(capacity=4, filled_count=1)

    def test_camel_case_used_when_pascal_absent(self):
        metrics = normalize_slot_metrics({"capacity": "6", "filledCount": "2"})
        assert metrics == SlotMetrics(capacity=6, filled_count=2)

    def test_non_mapping_input_is_tolerated(self):
        assert normalize_slot_metrics(None) == SlotMetrics(capacity=1, filled_count=0)


class TestNormalizeFilledCount:
    def test_legacy_volunteer_email_counts_as_one(self):
        metrics = normalize_slot_metrics({"VolunteerEmail": "a@example.com"})
        assert metrics == SlotMetrics(capacity=1, filled_count=1)

    def test_legacy_without_email_is_empty(self):
        assert normalize_slot_metrics({"VolunteerEmail": ""}).filled_count == 0

    def test_stored_counter_wins_over_legacy_email(self):
        metrics = normalize_slot_metrics(
            {"Capacity": 3, "FilledCount": 2, "VolunteerEmail": "a@example.com"}
        )
        assert metrics.filled_count == 2

    @pytest.mark.parametrize("raw, expected", [("junk", 0), (-4, 0), ("2", 2), (1.7, 1)])
    def test_filled_count_parsing(self, raw, expected):
        assert normalize_slot_metrics({"Capacity": 5, "FilledCount": raw}).filled_count == expected

    def test_overfilled_counter_is_kept(self):
        metrics = normalize_slot_metrics({"Capacity": 2, "FilledCount": 5})
        assert metrics == SlotMetrics(capacity=2, filled_count=5)


class TestStatus:
    def test_next_status_fills_at_capacity(self):
        assert next_status(SlotStatus.AVAILABLE, 3, 3) == SlotStatus.FILLED

    def test_next_status_available_below_capacity(self):
        assert next_status(SlotStatus.FILLED, 2, 3) == SlotStatus.AVAILABLE

    def test_held_is_sticky(self):
        assert next_status(SlotStatus.HELD, 3, 3) == SlotStatus.HELD
        assert next_status(SlotStatus.HELD, 0, 3) == SlotStatus.HELD

    def test_status_is_case_insensitive(self):
        assert parse_status("Held", SlotMetrics()) == SlotStatus.HELD

    def test_unknown_status_derived_from_counts(self):
        assert parse_status("booked", SlotMetrics(capacity=1, filled_count=1)) == SlotStatus.FILLED
        assert parse_status(None, SlotMetrics(capacity=2, filled_count=1)) == SlotStatus.AVAILABLE


class TestSchemaAdapter:
    def test_legacy_single_volunteer_slot(self):
        entity = Entity(
            partition_key="p1",
            row_key="s1",
            properties={
                "Task": "Greeter",
                "Status": "filled",
                "VolunteerEmail": "jo@example.com",
                "VolunteerFirstName": "Jo",
            },
            etag="e1",
        )
        slot = slot_from_entity(entity)

        assert slot.id == "s1"
        assert slot.project_id == "p1"
        assert slot.capacity == 1
        assert slot.filled_count == 1
        assert slot.spots_remaining == 0
        assert slot.volunteer.email == "jo@example.com"
        assert slot.volunteer.first_name == "Jo"
        assert slot.etag == "e1"

    def test_current_shape(self):
        entity = Entity(
            partition_key="p1",
            row_key="s2",
            properties={"Task": "Cook", "Status": "AVAILABLE", "Capacity": 4, "FilledCount": 1},
        )
        slot = slot_from_entity(entity)

        assert slot.status == SlotStatus.AVAILABLE
        assert slot.spots_remaining == 3
        assert slot.volunteer is None

    def test_volunteer_from_entity_falls_back_to_partition(self):
        entity = Entity(
            partition_key=volunteer_partition("p1", "s1"),
            row_key="1700000000000_abcd1234",
            properties={"FirstName": "Ada", "LastName": "L", "Email": "ada@example.com"},
        )
        volunteer = volunteer_from_entity(entity)

        assert volunteer.project_id == "p1"
        assert volunteer.slot_id == "s1"
        assert volunteer.phone == ""

    def test_project_category_defaults_to_general(self):
        project = project_from_entity(
            Entity(partition_key="", row_key="p9", properties={"Title": "Food Bank"})
        )
        assert project.category == "General"
        assert project.title == "Food Bank"

    def test_row_keys_are_unique_and_time_ordered(self):
        keys = {new_volunteer_row_key() for _ in range(200)}
        assert len(keys) == 200
        millis, _, suffix = next(iter(keys)).partition("_")
        assert millis.isdigit() and len(suffix) == 8
