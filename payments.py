"""
Braintree payment gateway

The gateway is built once, on first use, from the BRAINTREE_* settings.
Routes receive it through the ``get_gateway`` dependency so tests can swap
in a fake.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from functools import lru_cache
from typing import Any, Dict

import braintree

import config

logger = logging.getLogger(__name__)


def build_gateway() -> braintree.BraintreeGateway:
    environment = braintree.Environment.Production if config.BRAINTREE_ENVIRONMENT == "production" else braintree.Environment.Sandbox
    return braintree.BraintreeGateway(
        braintree.Configuration(
            environment=environment,
            merchant_id=config.BRAINTREE_MERCHANT_ID,
            public_key=config.BRAINTREE_PUBLIC_KEY,
            private_key=config.BRAINTREE_PRIVATE_KEY,
        )
    )


@lru_cache(maxsize=1)
def get_gateway() -> braintree.BraintreeGateway:
    return build_gateway()


def to_amount(total: float) -> str:
    return str(Decimal(str(total)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def charge(gateway, amount: str, nonce: str):
    logger.info("Submitting sale of %s", amount)
    return gateway.transaction.sale({
        "amount": amount,
        "payment_method_nonce": nonce,
        "options": {"submit_for_settlement": True},
    })


def summarize_result(result) -> Dict[str, Any]:
    """Plain-dict view of a sale result, suitable for storing on the order."""
    summary: Dict[str, Any] = {"success": bool(result.is_success)}
    tx = getattr(result, "transaction", None)
    if tx is not None:
        summary["transaction"] = {
            "id": tx.id,
            "status": tx.status,
            "amount": str(tx.amount),
            "currency_iso_code": getattr(tx, "currency_iso_code", None),
            "payment_instrument_type": getattr(tx, "payment_instrument_type", None),
        }
    return summary
