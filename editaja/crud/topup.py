"""
Top-up CRUD Operations
Midtrans payment attempts (`topupTransactions`) and diamond packages (`topupPlans`).
"""

from typing import Any, Dict, List, Optional

from editaja.crud.base import ASCENDING, DESCENDING, BaseCRUD, run_transaction, validate_model
from editaja.crud.tokens import TokenCRUD
from editaja.models.topup import DEFAULT_PLANS, TopupPlan, TopupStatus, TopupTransaction
from editaja.utils.exceptions import NotFoundError
from editaja.utils.logger import get_logger
from editaja.utils.timeutils import isoformat, utcnow

logger = get_logger(__name__)


class TopupCRUD(BaseCRUD):
    """CRUD operations for top-up transaction documents."""

    @property
    def collection_name(self) -> str:
        return "topupTransactions"

    def save_transaction(self, transaction: TopupTransaction) -> str:
        doc_id = self.create(transaction.to_dict())
        logger.info(f"Top-up transaction saved: {transaction.order_id} ({doc_id})")
        return doc_id

    def get_by_order_id(self, order_id: str) -> Optional[Dict[str, Any]]:
        items = self.list(filters=[("orderId", "==", order_id)], limit=1)
        return items[0] if items else None

    def update_transaction(self, doc_id: str, values: Dict[str, Any]) -> None:
        self.update(doc_id, values)

    def complete_transaction(
        self,
        doc_id: str,
        token_crud: TokenCRUD,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Mark a transaction settled and credit its diamonds exactly once.

        The credit and the status flip share one transaction guarded by
        ``status != settlement``, so a webhook racing a manual completion
        cannot credit twice.

        Returns:
            ``{"completed": bool, "alreadyCompleted": bool, "diamondsAdded": int, "balance": int|None}``
        """

        def _txn(transaction):
            ref = self.document(doc_id)
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                raise NotFoundError("Transaction not found")
            data = snapshot.to_dict()
            if data.get("status") == TopupStatus.SETTLEMENT.value:
                return {"completed": False, "alreadyCompleted": True, "diamondsAdded": 0, "balance": None}

            total = int(data.get("diamonds", 0)) + int(data.get("bonus", 0) or 0)
            balance = token_crud.add(data["userId"], total, transaction=transaction)
            now = utcnow()
            values = dict(extra or {})
            values.update({"status": TopupStatus.SETTLEMENT.value, "completedAt": now, "updatedAt": now})
            transaction.update(ref, values)
            return {"completed": True, "alreadyCompleted": False, "diamondsAdded": total, "balance": balance}

        result = run_transaction(self.db, _txn)
        if result["completed"]:
            logger.info(f"Top-up {doc_id} completed: +{result['diamondsAdded']} diamonds")
        return result

    def get_all(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        if not status:
            return self.list(order_by="createdAt", direction=DESCENDING)
        items = self.list(filters=[("status", "==", status)])
        items.sort(key=lambda t: isoformat(t.get("createdAt")) or "", reverse=True)
        return items

    def get_user_transactions(self, user_id: str) -> List[Dict[str, Any]]:
        items = self.list(filters=[("userId", "==", user_id)])
        items.sort(key=lambda t: isoformat(t.get("createdAt")) or "", reverse=True)
        return items


class TopupPlanCRUD(BaseCRUD):
    """CRUD operations for diamond packages."""

    @property
    def collection_name(self) -> str:
        return "topupPlans"

    def get_plans(self) -> List[Dict[str, Any]]:
        """Plans by display order; the built-in defaults when none are stored."""
        plans = self.list(order_by="order", direction=ASCENDING)
        if plans:
            return plans
        return [dict(plan.to_dict(), id=f"default-{plan.order}") for plan in DEFAULT_PLANS]

    def create_plan(self, values: Dict[str, Any]) -> Dict[str, Any]:
        plan = validate_model(TopupPlan, values)
        doc_id = self.create(plan.to_dict())
        return dict(plan.to_dict(), id=doc_id)

    def update_plan(self, plan_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
        current = self.get_by_id(plan_id)
        if not current:
            raise NotFoundError("Top-up plan not found")
        plan = validate_model(TopupPlan, {**current, **values})
        self.update(plan_id, plan.to_dict())
        return dict(plan.to_dict(), id=plan_id)

    def delete_plan(self, plan_id: str) -> None:
        if not self.exists(plan_id):
            raise NotFoundError("Top-up plan not found")
        self.delete(plan_id)
