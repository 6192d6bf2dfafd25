"""
Diamond top-ups through Midtrans Snap.

Flow: ``create`` stores a pending transaction and opens a Snap payment,
Midtrans then calls ``handle_notification``. The front-end polls ``status``
and, when the notification never arrives, falls back to ``complete`` or
``retry_failed``. Every path credits diamonds through
``TopupCRUD.complete_transaction`` so an order is credited once.
"""

import secrets
import string
import time
from contextlib import contextmanager
from typing import Any, Dict, Optional

from google.api_core.exceptions import ResourceExhausted

from editaja.crud.tokens import TokenCRUD
from editaja.crud.topup import TopupCRUD
from editaja.models.topup import TopupStatus, TopupTransaction
from editaja.services.midtrans_gateway import MidtransGateway, map_transaction_status
from editaja.utils.exceptions import (
    AuthorizationError,
    ConfigurationError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from editaja.utils.logger import get_logger
from editaja.utils.timeutils import utcnow

logger = get_logger(__name__)

_ORDER_SUFFIX_ALPHABET = string.digits + string.ascii_uppercase


def generate_order_id() -> str:
    """``TOPUP-{epoch ms}-{7 upper base36 chars}``."""
    suffix = "".join(secrets.choice(_ORDER_SUFFIX_ALPHABET) for _ in range(7))
    return f"TOPUP-{int(time.time() * 1000)}-{suffix}"


@contextmanager
def firestore_quota_guard(message: str = "Firestore quota exceeded. Please try again later."):
    """Turn Firestore RESOURCE_EXHAUSTED into a 503 with a retry hint."""
    try:
        yield
    except ResourceExhausted as e:
        logger.error(f"Firestore quota exceeded: {e}")
        raise ServiceUnavailableError(message, retry_after=3600) from e


class TopupService:
    """Top-up operations shared by the payment routes."""

    def __init__(self, db, gateway: Optional[MidtransGateway], base_url: str):
        self.db = db
        self.gateway = gateway
        self.base_url = base_url.rstrip("/")
        self.topups = TopupCRUD(db)
        self.tokens = TokenCRUD(db)

    def _require_gateway(self) -> MidtransGateway:
        if self.gateway is None:
            raise ConfigurationError(
                "Midtrans configuration not found. Please configure in admin settings."
            )
        return self.gateway

    def _snap_param(self, transaction: TopupTransaction) -> Dict[str, Any]:
        return {
            "transaction_details": {
                "order_id": transaction.order_id,
                "gross_amount": transaction.price,
            },
            "item_details": [
                {
                    "id": transaction.package_id,
                    "price": transaction.price,
                    "quantity": 1,
                    "name": transaction.item_name,
                }
            ],
            "customer_details": {
                "email": transaction.user_email or f"{transaction.user_id}@example.com",
            },
            "callbacks": {
                "finish": f"{self.base_url}/topup/success",
                "error": f"{self.base_url}/topup/error",
                "pending": f"{self.base_url}/topup/pending",
            },
        }

    async def create(
        self,
        user_id: str,
        user_email: Optional[str],
        package_id: Any,
        diamonds: Any,
        price: Any,
        bonus: Any = 0,
    ) -> Dict[str, Any]:
        """
        Store a pending transaction and open a Snap payment for it.

        The transaction is saved before Midtrans is called so a notification
        can never arrive for an order we do not know.
        """
        if not package_id or not diamonds or not price:
            raise ValidationError("Missing required fields")
        gateway = self._require_gateway()

        try:
            transaction = TopupTransaction(
                user_id=user_id,
                user_email=user_email,
                order_id=generate_order_id(),
                package_id=str(package_id),
                diamonds=int(diamonds),
                bonus=int(bonus or 0),
                price=int(price),
            )
        except (TypeError, ValueError) as e:
            raise ValidationError("Invalid top-up package") from e

        with firestore_quota_guard():
            doc_id = self.topups.save_transaction(transaction)

        result = await gateway.create_transaction(self._snap_param(transaction))
        self.topups.update_transaction(doc_id, {"snapToken": result["token"]})

        return {
            "ok": True,
            "token": result["token"],
            "redirectUrl": result.get("redirect_url"),
            "orderId": transaction.order_id,
            "transactionId": doc_id,
            "clientKey": gateway.client_key,
            "isProduction": gateway.is_production,
        }

    def handle_notification(self, notification: Dict[str, Any], header_signature: Optional[str] = None) -> Dict[str, Any]:
        """
        Apply a Midtrans HTTP notification.

        Raises:
            ConfigurationError: Midtrans is not configured
            AuthorizationError: a signature was supplied and does not match
            ValidationError: the notification has no order id
        """
        gateway = self._require_gateway()

        order_id = notification.get("order_id")
        signature = notification.get("signature_key") or header_signature
        if signature and order_id:
            valid = gateway.verify_signature(
                str(order_id),
                str(notification.get("status_code", "")),
                str(notification.get("gross_amount", "")),
                signature,
            )
            if not valid:
                logger.warning(f"Rejected Midtrans notification with bad signature for {order_id}")
                raise AuthorizationError("Invalid signature")

        if not order_id:
            raise ValidationError("Invalid notification: missing order_id")

        transaction = self.topups.get_by_order_id(order_id)
        if not transaction:
            logger.error(f"Midtrans notification for unknown order {order_id}")
            return {"ok": False, "error": "Transaction not found", "orderId": order_id}

        new_status = map_transaction_status(
            notification.get("transaction_status"), notification.get("fraud_status")
        )
        details: Dict[str, Any] = {}
        if notification.get("transaction_id"):
            details["midtransTransactionId"] = notification["transaction_id"]
        if notification.get("payment_type"):
            details["paymentMethod"] = notification["payment_type"]

        logger.info(f"Midtrans notification {order_id}: {transaction.get('status')} -> {new_status.value}")

        if new_status == TopupStatus.SETTLEMENT:
            result = self.topups.complete_transaction(transaction["id"], self.tokens, extra=details)
            return {
                "ok": True,
                "orderId": order_id,
                "status": new_status.value,
                "diamondsAdded": result["diamondsAdded"],
                "alreadyCompleted": result["alreadyCompleted"],
            }

        if transaction.get("status") != TopupStatus.SETTLEMENT.value:
            self.topups.update_transaction(transaction["id"], dict(details, status=new_status.value))
        return {"ok": True, "orderId": order_id, "status": new_status.value}

    def get_owned(self, order_id: Optional[str], user_id: str, is_admin: bool = False) -> Dict[str, Any]:
        if not order_id:
            raise ValidationError("Order ID is required")
        with firestore_quota_guard():
            transaction = self.topups.get_by_order_id(order_id)
        if not transaction:
            raise NotFoundError("Transaction not found")
        if transaction.get("userId") != user_id and not is_admin:
            raise AuthorizationError("Forbidden: This transaction does not belong to you")
        return transaction

    def status(self, order_id: Optional[str], user_id: str) -> Dict[str, Any]:
        transaction = self.get_owned(order_id, user_id)
        return {
            "ok": True,
            "status": transaction.get("status"),
            "orderId": transaction.get("orderId"),
            "diamonds": transaction.get("diamonds"),
            "bonus": transaction.get("bonus", 0),
            "price": transaction.get("price"),
        }

    def complete(self, order_id: Optional[str], user_id: str) -> Dict[str, Any]:
        """Manual completion used when the notification never reached us."""
        transaction = self.get_owned(order_id, user_id)
        if transaction.get("status") == TopupStatus.SETTLEMENT.value:
            return {"ok": True, "message": "Transaction already completed", "status": TopupStatus.SETTLEMENT.value}

        with firestore_quota_guard():
            result = self.topups.complete_transaction(transaction["id"], self.tokens)
        if result["alreadyCompleted"]:
            return {"ok": True, "message": "Transaction already completed", "status": TopupStatus.SETTLEMENT.value}
        return {
            "ok": True,
            "message": "Transaction completed successfully",
            "orderId": order_id,
            "status": TopupStatus.SETTLEMENT.value,
            "diamondsAdded": result["diamondsAdded"],
            "tokens": result["balance"],
        }

    async def retry_failed(self, order_id: Optional[str], user_id: str, is_admin: bool = False) -> Dict[str, Any]:
        """Re-check a stuck order with Midtrans and complete it when paid."""
        with firestore_quota_guard("Firestore quota still exceeded. Please wait and try again later."):
            transaction = self.get_owned(order_id, user_id, is_admin=is_admin)

        if transaction.get("status") == TopupStatus.SETTLEMENT.value:
            return {"ok": True, "message": "Transaction already completed", "status": TopupStatus.SETTLEMENT.value}

        gateway = self._require_gateway()
        remote = await gateway.get_status(order_id)
        if remote is None:
            return {
                "ok": True,
                "message": "Transaction not found at Midtrans yet, not ready for completion",
                "status": transaction.get("status"),
            }

        new_status = map_transaction_status(remote.get("transaction_status"), remote.get("fraud_status"))
        details: Dict[str, Any] = {}
        if remote.get("transaction_id"):
            details["midtransTransactionId"] = remote["transaction_id"]
        if remote.get("payment_type"):
            details["paymentMethod"] = remote["payment_type"]

        with firestore_quota_guard():
            if new_status == TopupStatus.SETTLEMENT:
                result = self.topups.complete_transaction(transaction["id"], self.tokens, extra=details)
                logger.info(f"Recovered top-up {order_id} via status check")
                return {
                    "ok": True,
                    "message": "Transaction completed successfully",
                    "orderId": order_id,
                    "status": new_status.value,
                    "diamondsAdded": result["diamondsAdded"],
                }
            if new_status.value != transaction.get("status"):
                self.topups.update_transaction(
                    transaction["id"], dict(details, status=new_status.value, checkedAt=utcnow())
                )

        return {
            "ok": True,
            "message": f"Transaction status is {new_status.value}, not ready for completion",
            "status": new_status.value,
        }
