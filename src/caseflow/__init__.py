"""caseflow — case lifecycle and audit-event engine."""

__version__ = "0.1.0"
