"""Tests for typed step payload validation."""

import pytest

from serenity.core.errors import ValidationError
from serenity.schemas.step_payloads import (
    CompanyInformationPayload,
    IdentityVerificationPayload,
    StepPayload,
    parse_step_payload,
    payload_to_step_data,
)
from serenity.services.onboarding_steps import OnboardingKind


class TestParseStepPayload:
    def test_known_step_gets_its_model(self) -> None:
        payload = parse_step_payload(
            OnboardingKind.CLIENT, 2, {"company_info": {"name": "Acme"}}
        )

        assert isinstance(payload, CompanyInformationPayload)
        assert payload.company_info is not None
        assert payload.company_info.name == "Acme"

    def test_same_number_differs_per_kind(self) -> None:
        payload = parse_step_payload(
            OnboardingKind.CONSULTANT, 7, {"identity_verification": {"status": "verified"}}
        )

        assert isinstance(payload, IdentityVerificationPayload)

    def test_unregistered_step_accepts_any_map(self) -> None:
        payload = parse_step_payload(OnboardingKind.CLIENT, 1, {"seen_video": True})

        assert type(payload) is StepPayload
        assert payload_to_step_data(payload) == {"seen_video": True}

    def test_missing_data_is_empty(self) -> None:
        payload = parse_step_payload(OnboardingKind.CLIENT, 4, None)

        assert payload_to_step_data(payload) == {}

    def test_invalid_data_lists_field_errors(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            parse_step_payload(
                OnboardingKind.CLIENT, 5, {"budget_range": "a lot"}
            )

        error = exc_info.value
        assert error.code == "VALIDATION_ERROR"
        assert error.message == "Invalid data for step 5"
        assert error.details[0]["loc"] == ["budget_range"]

    def test_step_data_only_keeps_sent_keys(self) -> None:
        payload = parse_step_payload(
            OnboardingKind.CLIENT, 5, {"budget_range": "under_5k", "notes": "tight"}
        )

        assert payload_to_step_data(payload) == {
            "budget_range": "under_5k",
            "notes": "tight",
        }
