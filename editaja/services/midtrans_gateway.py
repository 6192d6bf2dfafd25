"""Midtrans Snap integration (transaction creation, status query, notification signatures)."""

import hashlib
import hmac
from typing import Any, Dict, Optional

import midtransclient
from midtransclient.error_midtrans import MidtransAPIError
from requests.exceptions import RequestException
from starlette.concurrency import run_in_threadpool

from editaja.models.topup import TopupStatus
from editaja.utils.exceptions import PaymentGatewayError
from editaja.utils.logger import get_logger

logger = get_logger(__name__)

_STATUS_MAP = {
    "settlement": TopupStatus.SETTLEMENT,
    "pending": TopupStatus.PENDING,
    "expire": TopupStatus.EXPIRE,
    "cancel": TopupStatus.CANCEL,
    "deny": TopupStatus.DENY,
    "refund": TopupStatus.REFUND,
    "partial_refund": TopupStatus.REFUND,
}


def map_transaction_status(transaction_status: Optional[str], fraud_status: Optional[str] = None) -> TopupStatus:
    """
    Map a Midtrans transaction status onto our top-up status.

    Card payments report ``capture``; only fraud status ``accept`` makes
    it settled, a missing or ``challenge`` verdict stays pending. Unknown
    states stay pending.
    """
    if transaction_status == "capture":
        return TopupStatus.SETTLEMENT if fraud_status == "accept" else TopupStatus.PENDING
    return _STATUS_MAP.get(transaction_status or "", TopupStatus.PENDING)


def compute_signature(order_id: str, status_code: str, gross_amount: str, server_key: str) -> str:
    payload = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(payload.encode()).hexdigest()


class MidtransGateway:
    """Wraps ``midtransclient.Snap`` for use from async handlers."""

    def __init__(
        self,
        server_key: str,
        client_key: str,
        is_production: bool = False,
        snap: Optional[Any] = None,
    ):
        self.server_key = server_key
        self.client_key = client_key
        self.is_production = is_production
        self.snap = snap or midtransclient.Snap(
            is_production=is_production,
            server_key=server_key,
            client_key=client_key,
        )

    async def create_transaction(self, param: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a Snap transaction.

        Returns:
            Midtrans response with ``token`` and ``redirect_url``.
        """
        order_id = param.get("transaction_details", {}).get("order_id")
        try:
            result = await run_in_threadpool(self.snap.create_transaction, param)
        except MidtransAPIError as e:
            logger.error(f"Midtrans rejected transaction {order_id}: {e.message}")
            raise PaymentGatewayError(
                f"Failed to create Midtrans transaction: {e.message}",
                details={"status_code": e.api_response_dict.get("status_code") if isinstance(e.api_response_dict, dict) else None},
            ) from e
        except RequestException as e:
            logger.error(f"Midtrans unreachable for {order_id}: {e}")
            raise PaymentGatewayError("Failed to contact Midtrans") from e

        if not result.get("token"):
            raise PaymentGatewayError("No token received from Midtrans")
        logger.info(f"Midtrans Snap transaction created: {order_id}")
        return result

    async def get_status(self, order_id: str) -> Optional[Dict[str, Any]]:
        """
        Query a transaction's status.

        Returns:
            The Midtrans status payload, or None when Midtrans does not know
            the order yet (the buyer never opened a payment method).
        """
        try:
            return await run_in_threadpool(self.snap.transactions.status, order_id)
        except MidtransAPIError as e:
            body = e.api_response_dict if isinstance(e.api_response_dict, dict) else {}
            if str(body.get("status_code")) == "404" or e.http_status_code == 404:
                return None
            logger.error(f"Midtrans status query failed for {order_id}: {e.message}")
            raise PaymentGatewayError(f"Failed to check payment status: {e.message}") from e
        except RequestException as e:
            raise PaymentGatewayError("Failed to contact Midtrans") from e

    def verify_signature(self, order_id: str, status_code: str, gross_amount: str, signature: str) -> bool:
        expected = compute_signature(order_id, status_code, gross_amount, self.server_key)
        return hmac.compare_digest(expected, signature or "")
