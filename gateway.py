"""
Braintree payment gateway wrapper.

Only two calls are used: issuing a client token for the drop-in UI and
submitting a sale for a payment method nonce. Sale results are converted to
plain documents so they can be stored on the order as-is.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import braintree
from fastapi import HTTPException

import config

logger = logging.getLogger(__name__)

_ENVIRONMENTS = {
    "sandbox": braintree.Environment.Sandbox,
    "production": braintree.Environment.Production,
}


def _transaction_to_dict(transaction) -> Dict[str, Any]:
    amount = getattr(transaction, "amount", None)
    if amount is not None:
        amount = f"{Decimal(str(amount)):.2f}"
    return {
        "id": getattr(transaction, "id", None),
        "status": getattr(transaction, "status", None),
        "type": getattr(transaction, "type", None),
        "amount": amount,
        "currency_iso_code": getattr(transaction, "currency_iso_code", None),
        "processor_response_code": getattr(transaction, "processor_response_code", None),
        "processor_response_text": getattr(transaction, "processor_response_text", None),
    }


def result_to_dict(result) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"success": bool(result.is_success)}
    transaction = getattr(result, "transaction", None)
    if transaction is not None:
        payload["transaction"] = _transaction_to_dict(transaction)
    if not result.is_success:
        payload["message"] = getattr(result, "message", None)
        errors = getattr(result, "errors", None)
        payload["errors"] = [
            {"attribute": e.attribute, "code": e.code, "message": e.message}
            for e in (errors.deep_errors if errors is not None else [])
        ]
    return payload


class PaymentGateway:
    def __init__(self, merchant_id: str, public_key: str, private_key: str, environment: str = "sandbox"):
        if environment not in _ENVIRONMENTS:
            raise ValueError(f"Unknown Braintree environment: {environment}")
        self._gateway = braintree.BraintreeGateway(
            braintree.Configuration(
                _ENVIRONMENTS[environment],
                merchant_id=merchant_id,
                public_key=public_key,
                private_key=private_key,
            )
        )

    def generate_client_token(self) -> str:
        return self._gateway.client_token.generate()

    def sale(self, amount: str, nonce: str) -> Dict[str, Any]:
        result = self._gateway.transaction.sale({
            "amount": amount,
            "payment_method_nonce": nonce,
            "options": {"submit_for_settlement": True},
        })
        return result_to_dict(result)


_gateway: Optional[PaymentGateway] = None


def gateway_configured() -> bool:
    return all([config.BRAINTREE_MERCHANT_ID, config.BRAINTREE_PUBLIC_KEY, config.BRAINTREE_PRIVATE_KEY])


def get_gateway() -> PaymentGateway:
    global _gateway
    if _gateway is None:
        if not gateway_configured():
            raise HTTPException(500, "Payment gateway not configured")
        _gateway = PaymentGateway(
            config.BRAINTREE_MERCHANT_ID,
            config.BRAINTREE_PUBLIC_KEY,
            config.BRAINTREE_PRIVATE_KEY,
            config.BRAINTREE_ENVIRONMENT,
        )
        logger.info("Braintree gateway ready (%s)", config.BRAINTREE_ENVIRONMENT)
    return _gateway
