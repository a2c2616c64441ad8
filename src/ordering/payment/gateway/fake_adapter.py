"""Configurable fake payment gateway for development and testing.

Simulates a hosted checkout provider without any external calls. It can be
configured at runtime to refuse forms or decline payments, which keeps API
tests predictable.
"""

from uuid import uuid4

from ordering.payment.gateway.port import CheckoutFormRequest, CheckoutFormResult, PaymentGateway, PaymentVerdict


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Payment provider unavailable"
        self.calls: list[dict] = []
        self._forms: dict[str, CheckoutFormRequest] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Payment provider unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_checkout_form(self, request: CheckoutFormRequest) -> CheckoutFormResult:
        self.calls.append(
            {
                "method": "create_checkout_form",
                "order_id": request.order_id,
                "amount": request.amount,
                "currency": request.currency,
            }
        )

        if not self.should_succeed:
            return CheckoutFormResult(success=False, failure_reason=self.failure_reason)

        token = f"fake_tok_{uuid4().hex[:12]}"
        self._forms[token] = request
        return CheckoutFormResult(
            success=True,
            token=token,
            payment_form=(
                f'<div id="fake-checkout-form" data-token="{token}" '
                f'data-amount="{request.amount:.2f}" data-currency="{request.currency}"></div>'
            ),
            payment_page_url=f"https://payments.example.test/checkout/{token}",
        )

    def retrieve_result(self, token: str) -> PaymentVerdict:
        self.calls.append({"method": "retrieve_result", "token": token})

        request = self._forms.get(token)
        if request is None:
            return PaymentVerdict(success=False, failure_reason="Unknown payment token")
        if not self.should_succeed:
            return PaymentVerdict(success=False, failure_reason=self.failure_reason, order_id=request.order_id)
        return PaymentVerdict(
            success=True,
            payment_reference=f"fake_pay_{uuid4().hex[:12]}",
            order_id=request.order_id,
        )
