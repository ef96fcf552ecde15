"""HTTP surface for caseflow: request/response schemas and the /api/v1 router."""
