"""Pydantic schemas for onboarding records and API endpoints.

- onboarding_documents.py: typed shape of the JSONB sub-documents
- step_payloads.py: per-step ``data`` payloads accepted by step updates
- onboarding.py: API request bodies and read models

Import from the submodules directly; this package re-exports nothing so
services can depend on the document models without pulling in the API
layer.
"""
