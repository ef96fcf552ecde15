"""Tests for case snapshots and change rows.

Pure functions only, no database.
"""

from collections.abc import Callable
from types import SimpleNamespace

import pytest
from pydantic import ValidationError as PydanticValidationError

from caseflow.core.snapshot import (
    NOT_PROVIDED,
    CaseSnapshot,
    ChangeRow,
    DateParts,
    diff_rows,
    format_date_parts,
    take_snapshot,
)
from caseflow.core.workflow import CaseState


class TestDateParts:
    """Tests for DateParts — only real calendar dates can be built."""

    def test_valid_date_formats_with_english_month(self) -> None:
        """15/3/1990 renders as '15 March 1990'."""
        assert DateParts(day=15, month=3, year=1990).format() == "15 March 1990"

    def test_leap_day_is_accepted(self) -> None:
        """29 February is valid in a leap year."""
        assert DateParts(day=29, month=2, year=2024).format() == "29 February 2024"

    @pytest.mark.parametrize(
        ("day", "month", "year"),
        [(31, 2, 2020), (29, 2, 2023), (0, 1, 2000), (1, 13, 2000), (31, 4, 1999)],
    )
    def test_impossible_dates_are_rejected(self, day: int, month: int, year: int) -> None:
        """Out-of-range parts and non-existent dates fail validation."""
        with pytest.raises(PydanticValidationError):
            DateParts(day=day, month=month, year=year)

    def test_partial_date_is_rejected(self) -> None:
        """A missing part cannot produce a DateParts."""
        with pytest.raises(PydanticValidationError):
            DateParts.model_validate({"day": 1, "month": 2})


class TestFormatDateParts:
    """Tests for format_date_parts()."""

    def test_complete_triple(self) -> None:
        assert format_date_parts(1, 12, 2001) == "1 December 2001"

    @pytest.mark.parametrize(
        ("day", "month", "year"),
        [(None, None, None), (15, None, 1990), (0, 3, 1990), (30, 2, 2000)],
    )
    def test_incomplete_or_invalid_is_none(self, day: int | None, month: int | None, year: int | None) -> None:
        """Missing, zero, or impossible parts produce None."""
        assert format_date_parts(day, month, year) is None


class TestTakeSnapshot:
    """Tests for take_snapshot()."""

    def test_copies_comparable_fields(self, make_case_stub: Callable[..., SimpleNamespace]) -> None:
        """All comparable fields are copied; None stays None."""
        case = make_case_stub(title="Flu cluster", person_name="Jane Doe", dob_day=1, state="DRAFT")

        snapshot = take_snapshot(case)

        assert snapshot.title == "Flu cluster"
        assert snapshot.person_name == "Jane Doe"
        assert snapshot.dob_day == 1
        assert snapshot.dob_month is None
        assert snapshot.state == "DRAFT"

    def test_empty_string_is_kept_distinct_from_absent(self, make_case_stub: Callable[..., SimpleNamespace]) -> None:
        """An empty string is preserved, not collapsed into None."""
        snapshot = take_snapshot(make_case_stub(title="x", description=""))

        assert snapshot.description == ""
        assert snapshot.postcode is None

    def test_missing_attributes_read_as_absent(self) -> None:
        """Objects without some attributes still snapshot cleanly."""
        snapshot = take_snapshot(SimpleNamespace(title="Only a title"))

        assert snapshot.title == "Only a title"
        assert snapshot.nhs_number is None

    def test_enum_state_is_stored_as_value(self, make_case_stub: Callable[..., SimpleNamespace]) -> None:
        snapshot = take_snapshot(make_case_stub(title="x", state=CaseState.IN_REVIEW))

        assert snapshot.state == "IN_REVIEW"


class TestCaseSnapshotEventData:
    """Tests for the stored event payload form of a snapshot."""

    def test_from_event_data_ignores_unknown_and_missing_keys(self) -> None:
        snapshot = CaseSnapshot.from_event_data({"person_name": "Jane Doe", "legacy_field": "ignored"})

        assert snapshot.person_name == "Jane Doe"
        assert snapshot.postcode is None

    def test_from_event_data_none_is_empty_snapshot(self) -> None:
        assert CaseSnapshot.from_event_data(None) == CaseSnapshot()

    def test_to_event_data_contains_every_field(self) -> None:
        data = CaseSnapshot(title="T").to_event_data()

        assert data["title"] == "T"
        assert "symptoms_year" in data
        assert data["symptoms_year"] is None


class TestDiffRows:
    """Tests for diff_rows() — rendering what changed between two snapshots."""

    def test_identical_snapshots_have_no_rows(self) -> None:
        snapshot = CaseSnapshot(title="T", person_name="Jane Doe", dob_day=1, dob_month=1, dob_year=1990)

        assert diff_rows(snapshot, snapshot) == []

    def test_absent_and_empty_string_compare_equal(self) -> None:
        """None and '' are the same for diffing purposes."""
        assert diff_rows(CaseSnapshot(description=None), CaseSnapshot(description="")) == []

    def test_simple_field_change(self) -> None:
        rows = diff_rows(CaseSnapshot(postcode=None), CaseSnapshot(postcode="LS1 4AP"))

        assert rows == [ChangeRow(label="Postcode", from_display=NOT_PROVIDED, to_display="LS1 4AP")]

    def test_cleared_field_displays_not_provided(self) -> None:
        rows = diff_rows(CaseSnapshot(organisation="St James"), CaseSnapshot(organisation=None))

        assert rows == [ChangeRow(label="Organisation", from_display="St James", to_display=NOT_PROVIDED)]

    def test_rows_follow_fixed_label_order(self) -> None:
        """Simple fields first in declared order, then date groups."""
        before = CaseSnapshot()
        after = CaseSnapshot(
            description="d",
            title="t",
            postcode="p",
            person_name="n",
            symptoms_day=2,
            symptoms_month=2,
            symptoms_year=2022,
            dob_day=1,
            dob_month=1,
            dob_year=1990,
        )

        labels = [row.label for row in diff_rows(before, after)]

        assert labels == [
            "Full name",
            "Postcode",
            "Title",
            "Description",
            "Date of birth",
            "Symptoms start date",
        ]

    def test_changing_one_date_part_yields_one_row(self) -> None:
        """Only dob_year changes, yet exactly one 'Date of birth' row appears."""
        before = CaseSnapshot(dob_day=15, dob_month=3, dob_year=1990)
        after = CaseSnapshot(dob_day=15, dob_month=3, dob_year=1991)

        rows = diff_rows(before, after)

        assert rows == [ChangeRow(label="Date of birth", from_display="15 March 1990", to_display="15 March 1991")]

    def test_date_set_from_nothing(self) -> None:
        rows = diff_rows(CaseSnapshot(), CaseSnapshot(symptoms_day=15, symptoms_month=3, symptoms_year=1990))

        assert len(rows) == 1
        assert rows[0].label == "Symptoms start date"
        assert rows[0].from_display == NOT_PROVIDED
        assert rows[0].to_display == "15 March 1990"

    def test_non_labelled_fields_are_not_diffed(self) -> None:
        """updated_by, assigned_to and state changes produce no rows."""
        before = CaseSnapshot(updated_by="a", state="DRAFT")
        after = CaseSnapshot(updated_by="b", state="IN_REVIEW", assigned_to="c")

        assert diff_rows(before, after) == []

    def test_non_string_values_are_compared_as_strings(self) -> None:
        rows = diff_rows(CaseSnapshot(nhs_number="1234567890"), CaseSnapshot(nhs_number="123 456 7890"))

        assert rows == [ChangeRow(label="NHS number", from_display="1234567890", to_display="123 456 7890")]
