"""
Card payment intake.

Accepts a card form and reports success. Nothing is charged, stored or
linked to a transaction; settlement against a real processor would plug in
behind `PaymentIntake.submit`.
"""
from typing import Any, Dict

import structlog
from pydantic import BaseModel, ConfigDict, StrictStr
from pydantic.alias_generators import to_camel

from marketplace.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


class PaymentForm(BaseModel):
    """Card payment form. Every field is a required string."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    card_number: StrictStr
    expiration_date: StrictStr
    cvv: StrictStr
    name: StrictStr
    address: StrictStr

    @property
    def card_last4(self) -> str:
        digits = "".join(ch for ch in self.card_number if ch.isdigit())
        return digits[-4:]


class PaymentIntake:
    """Stub payment processor that always succeeds."""

    async def submit(self, form: PaymentForm) -> Dict[str, Any]:
        """
        Accept a payment form.

        Args:
            form: Shape-validated card form

        Returns:
            Dict[str, Any]: `{"success": True}`
        """
        metrics.record_payment_form()
        logger.info("payment_form_accepted", card_last4=form.card_last4)
        return {"success": True}
