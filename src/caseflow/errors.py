"""Error taxonomy for caseflow.

The engine itself signals a missing case by returning None. The exceptions
below cover the remaining outcomes a caller must tell apart:

- ValidationError / InvalidTransitionError — caller input errors (400)
- ConcurrentModificationError              — optimistic version conflict (409)
- NotFoundError                            — raised by the API layer only (404)

Store failures are SQLAlchemy exceptions and propagate unchanged.
"""


class CaseflowError(Exception):
    """Base class for all caseflow errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(CaseflowError):
    """Raised when a caller supplies input the engine cannot accept."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidTransitionError(ValidationError):
    """Raised when an event type is unknown or illegal from the current state."""

    def __init__(self, current_state: str, event_type: str) -> None:
        self.current_state = current_state
        self.event_type = event_type
        super().__init__(
            message=f"Cannot apply '{event_type}' to a case in state '{current_state}'",
            field="event_type",
        )


class ConcurrentModificationError(CaseflowError):
    """Raised when the case row changed underneath an update."""

    def __init__(self, case_id: str, expected_version: int | None = None) -> None:
        self.case_id = case_id
        self.expected_version = expected_version
        if expected_version is None:
            message = f"Case {case_id} was modified by another request"
        else:
            message = f"Case {case_id} is no longer at version {expected_version}"
        super().__init__(message)


class NotFoundError(CaseflowError):
    """Raised by the presentation layer when an engine lookup returned None."""

    def __init__(self, resource: str, resource_id: str) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} {resource_id} not found")
