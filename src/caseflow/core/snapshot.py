"""Case snapshots and human-readable change rows.

Pure functions only, no I/O. The lifecycle engine uses take_snapshot() to
build the before/after payload stored on every edit event; readers rebuild
those snapshots with CaseSnapshot.from_event_data() and render them with
diff_rows().

None is the single "absent" marker inside a snapshot. An empty string is a
distinct value, but compares equal to absent when diffing.
"""

from collections.abc import Mapping
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

NOT_PROVIDED = "Not provided"

# Fixed English names so rendering does not depend on the process locale
_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

# Diffed one-to-one, in this order, before the date groups
SIMPLE_FIELD_LABELS: tuple[tuple[str, str], ...] = (
    ("person_name", "Full name"),
    ("nhs_number", "NHS number"),
    ("postcode", "Postcode"),
    ("organisation", "Organisation"),
    ("title", "Title"),
    ("description", "Description"),
)

# Each group is compared and displayed as a whole (day, month, year)
DATE_GROUP_LABELS: tuple[tuple[str, str], ...] = (
    ("dob", "Date of birth"),
    ("symptoms", "Symptoms start date"),
)


class DateParts(BaseModel):
    """A complete, valid calendar date held as separate day/month/year parts.

    A DateParts can only be built from a real date, so a partial or impossible
    triple never reaches the case store.
    """

    model_config = ConfigDict(frozen=True)

    day: int = Field(ge=1, le=31)
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1, le=9999)

    @model_validator(mode="after")
    def _check_calendar_date(self) -> "DateParts":
        try:
            date(self.year, self.month, self.day)
        except ValueError as exc:
            raise ValueError(f"{self.day}/{self.month}/{self.year} is not a real date") from exc
        return self

    def format(self) -> str:
        """Render as e.g. '15 March 1990'."""
        return f"{self.day} {_MONTH_NAMES[self.month - 1]} {self.year}"


def format_date_parts(day: Any, month: Any, year: Any) -> str | None:
    """Format a day/month/year triple for display.

    Args:
        day: Day of month, or None.
        month: Month number, or None.
        year: Four-digit year, or None.

    Returns:
        The formatted date, or None when any part is missing or zero, or the
        parts do not form a calendar date.
    """
    if not day or not month or not year:
        return None
    try:
        parts = DateParts(day=int(day), month=int(month), year=int(year))
    except (TypeError, ValueError):
        # pydantic.ValidationError subclasses ValueError
        return None
    return parts.format()


class CaseSnapshot(BaseModel):
    """The comparable subset of a case's fields at one moment."""

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    description: str | None = None
    person_name: str | None = None
    nhs_number: str | None = None
    dob_day: int | None = None
    dob_month: int | None = None
    dob_year: int | None = None
    symptoms_day: int | None = None
    symptoms_month: int | None = None
    symptoms_year: int | None = None
    postcode: str | None = None
    organisation: str | None = None
    updated_by: str | None = None
    assigned_to: str | None = None
    state: str | None = None

    @classmethod
    def from_event_data(cls, data: Mapping[str, Any] | None) -> "CaseSnapshot":
        """Rebuild a snapshot from a stored event payload.

        Keys missing from the payload read as absent; unknown keys are ignored.
        """
        if not data:
            return cls()
        return cls(**{name: data.get(name) for name in cls.model_fields})

    def to_event_data(self) -> dict[str, Any]:
        """JSON-ready mapping, every snapshot field present."""
        return self.model_dump(mode="json")

    def date_parts(self, group: str) -> tuple[int | None, int | None, int | None]:
        """Return the (day, month, year) triple for a date group ('dob' or 'symptoms')."""
        return (
            getattr(self, f"{group}_day"),
            getattr(self, f"{group}_month"),
            getattr(self, f"{group}_year"),
        )


class ChangeRow(BaseModel):
    """One changed field, ready for display."""

    model_config = ConfigDict(frozen=True)

    label: str
    from_display: str
    to_display: str


def take_snapshot(case: Any) -> CaseSnapshot:
    """Extract the comparable fields from a case row.

    Args:
        case: Any object exposing the case column attributes (normally a
            Case ORM row). Missing attributes read as absent.

    Returns:
        The CaseSnapshot.
    """
    values = {name: getattr(case, name, None) for name in CaseSnapshot.model_fields}
    state = values.get("state")
    if state is not None and not isinstance(state, str):
        values["state"] = getattr(state, "value", str(state))
    return CaseSnapshot(**values)


def _comparable(value: Any) -> str:
    return "" if value is None else str(value)


def _display(value: Any) -> str:
    if value is None or value == "":
        return NOT_PROVIDED
    return str(value)


def _display_date(parts: tuple[int | None, int | None, int | None]) -> str:
    return format_date_parts(*parts) or NOT_PROVIDED


def diff_rows(before: CaseSnapshot, after: CaseSnapshot) -> list[ChangeRow]:
    """List what changed between two snapshots.

    Simple fields come first in SIMPLE_FIELD_LABELS order, then one row per
    changed date group (date of birth, then symptoms start date). A date group
    yields at most one row however many of its parts changed.

    Args:
        before: Snapshot taken before the change.
        after: Snapshot taken after the change.

    Returns:
        Change rows in a fixed, deterministic order. Empty when nothing differs.
    """
    rows: list[ChangeRow] = []

    for field, label in SIMPLE_FIELD_LABELS:
        old = getattr(before, field)
        new = getattr(after, field)
        if _comparable(old) != _comparable(new):
            rows.append(ChangeRow(label=label, from_display=_display(old), to_display=_display(new)))

    for group, label in DATE_GROUP_LABELS:
        old_parts = before.date_parts(group)
        new_parts = after.date_parts(group)
        if old_parts != new_parts:
            rows.append(
                ChangeRow(
                    label=label,
                    from_display=_display_date(old_parts),
                    to_display=_display_date(new_parts),
                )
            )

    return rows
