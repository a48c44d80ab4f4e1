"""
Unit tests for the card payment intake stub.
"""
from typing import Any

import pytest
from pydantic import ValidationError as FormValidationError

from marketplace.core.payment_intake import PaymentForm, PaymentIntake


class TestPaymentIntake:
    """Test suite for PaymentIntake."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_submit_always_succeeds(self, sample_payment_form: dict[str, Any]) -> None:
        form = PaymentForm.model_validate(sample_payment_form)

        assert await PaymentIntake().submit(form) == {"success": True}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_submit_logs_only_last_four_digits(
        self, sample_payment_form: dict[str, Any], mocker: Any
    ) -> None:
        mock_logger = mocker.patch("marketplace.core.payment_intake.logger")
        form = PaymentForm.model_validate(sample_payment_form)

        await PaymentIntake().submit(form)

        mock_logger.info.assert_called_once_with("payment_form_accepted", card_last4="4242")

    @pytest.mark.unit
    def test_form_accepts_snake_case_names(self) -> None:
        form = PaymentForm(
            card_number="4000056655665556",
            expiration_date="01/29",
            cvv="999",
            name="Bob",
            address="2 High St",
        )

        assert form.card_last4 == "5556"

    @pytest.mark.unit
    def test_form_rejects_numeric_fields(self, sample_payment_form: dict[str, Any]) -> None:
        sample_payment_form["cardNumber"] = 4242424242424242

        with pytest.raises(FormValidationError):
            PaymentForm.model_validate(sample_payment_form)
