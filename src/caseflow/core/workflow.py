"""Case workflow states, event types, and the legal transition table.

Lifecycle:
    DRAFT ──SUBMIT_FOR_REVIEW──▶ IN_REVIEW ──APPROVE──▶ APPROVED (terminal)
                                     │  ▲
                               RETURN│  │SUBMIT_FOR_REVIEW
                                     ▼  │
                                   RETURNED

Every pair not listed in TRANSITIONS is illegal.
"""

from enum import Enum

from caseflow.errors import InvalidTransitionError


class CaseState(str, Enum):
    """Workflow state of a case."""

    DRAFT = "DRAFT"
    IN_REVIEW = "IN_REVIEW"
    RETURNED = "RETURNED"
    APPROVED = "APPROVED"

    @property
    def is_terminal(self) -> bool:
        """True when no transition leaves this state."""
        return not any(current is self for current, _ in TRANSITIONS)


class CaseEventType(str, Enum):
    """Tag recorded on every case event."""

    CREATE = "CREATE"
    EDIT_DETAILS = "EDIT_DETAILS"
    EDIT_PERSON = "EDIT_PERSON"
    EDIT_CLINICAL = "EDIT_CLINICAL"
    EDIT_LOCATION = "EDIT_LOCATION"
    SUBMIT_FOR_REVIEW = "SUBMIT_FOR_REVIEW"
    APPROVE = "APPROVE"
    RETURN = "RETURN"


INITIAL_STATE = CaseState.DRAFT

TRANSITIONS: dict[tuple[CaseState, CaseEventType], CaseState] = {
    (CaseState.DRAFT, CaseEventType.SUBMIT_FOR_REVIEW): CaseState.IN_REVIEW,
    (CaseState.RETURNED, CaseEventType.SUBMIT_FOR_REVIEW): CaseState.IN_REVIEW,
    (CaseState.IN_REVIEW, CaseEventType.APPROVE): CaseState.APPROVED,
    (CaseState.IN_REVIEW, CaseEventType.RETURN): CaseState.RETURNED,
}


def resolve_transition(current_state: str, event_type: str) -> tuple[CaseEventType, CaseState]:
    """Look up the state a case moves to when an event is applied.

    Args:
        current_state: The case's current state value.
        event_type: The requested event type tag.

    Returns:
        The parsed event type and the next state.

    Raises:
        InvalidTransitionError: If either value is unknown or the pair is not
            in the transition table.
    """
    try:
        state = CaseState(current_state)
        event = CaseEventType(event_type)
    except ValueError as exc:
        raise InvalidTransitionError(current_state=str(current_state), event_type=str(event_type)) from exc

    next_state = TRANSITIONS.get((state, event))
    if next_state is None:
        raise InvalidTransitionError(current_state=state.value, event_type=event.value)
    return event, next_state


def allowed_events(current_state: str) -> list[CaseEventType]:
    """Return the event types that are legal from a state, in table order."""
    return [event for (state, event) in TRANSITIONS if state.value == current_state]
