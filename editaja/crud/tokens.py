"""
Token CRUD Operations
Diamond balances stored in `userTokens/{uid}`.
"""

from typing import Any, Dict, Optional

from editaja.crud.base import BaseCRUD, run_transaction
from editaja.crud.settings import SettingsCRUD
from editaja.utils.exceptions import ValidationError
from editaja.utils.logger import get_logger
from editaja.utils.timeutils import to_datetime, utcnow

logger = get_logger(__name__)


class TokenCRUD(BaseCRUD):
    """CRUD operations for user token (diamond) balances."""

    def __init__(self, db, settings_crud: Optional[SettingsCRUD] = None):
        super().__init__(db)
        self.settings_crud = settings_crud or SettingsCRUD(db)

    @property
    def collection_name(self) -> str:
        return "userTokens"

    def _initial_tokens(self) -> int:
        return self.settings_crud.get_tokens().initial_tokens

    def _apply_daily_reset(self, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Return the fields to write for the daily reset, or None.

        A new UTC day tops the balance back up to the initial allowance.
        Purchased diamonds above the allowance are kept.
        """
        now = utcnow()
        last_reset = to_datetime(data.get("lastResetDate"))
        if last_reset is None:
            return {"lastResetDate": now, "updatedAt": now}
        if last_reset.date() < now.date():
            initial = self._initial_tokens()
            current = int(data.get("tokens", 0))
            return {"tokens": max(current, initial), "lastResetDate": now, "updatedAt": now}
        return None

    def get_balance(self, user_id: str) -> int:
        """Current balance, initialising the document or applying the daily reset."""
        ref = self.document(user_id)
        doc = ref.get()
        if not doc.exists:
            return self.initialize(user_id)

        data = doc.to_dict()
        reset = self._apply_daily_reset(data)
        if reset:
            ref.update(reset)
            if "tokens" in reset and reset["tokens"] != data.get("tokens"):
                logger.info(f"Daily token reset for {user_id}: {data.get('tokens')} -> {reset['tokens']}")
            return int(reset.get("tokens", data.get("tokens", 0)))
        return int(data.get("tokens", 0))

    def initialize(self, user_id: str) -> int:
        """Create the balance document if missing. Returns the balance."""
        initial = self._initial_tokens()

        def _txn(transaction):
            ref = self.document(user_id)
            doc = ref.get(transaction=transaction)
            if doc.exists:
                return int(doc.to_dict().get("tokens", 0))
            now = utcnow()
            transaction.set(ref, {"tokens": initial, "lastResetDate": now, "createdAt": now, "updatedAt": now})
            logger.info(f"Initialized {initial} tokens for {user_id}")
            return initial

        return run_transaction(self.db, _txn)

    def deduct(self, user_id: str, amount: int) -> Optional[int]:
        """
        Deduct diamonds atomically.

        Returns:
            The new balance, or None when the balance is insufficient.
        """
        self.get_balance(user_id)

        def _txn(transaction):
            ref = self.document(user_id)
            doc = ref.get(transaction=transaction)
            current = int((doc.to_dict() or {}).get("tokens", 0))
            if current < amount:
                return None
            new_balance = current - amount
            transaction.update(ref, {"tokens": new_balance, "updatedAt": utcnow()})
            return new_balance

        result = run_transaction(self.db, _txn)
        if result is None:
            logger.info(f"Insufficient tokens for {user_id} (needs {amount})")
        return result

    def add(self, user_id: str, amount: int, transaction=None) -> int:
        """
        Add diamonds, creating the balance document when missing.

        When ``transaction`` is given the write joins the caller's transaction.
        """

        def _txn(txn):
            ref = self.document(user_id)
            doc = ref.get(transaction=txn)
            now = utcnow()
            if doc.exists:
                new_balance = int(doc.to_dict().get("tokens", 0)) + amount
                txn.update(ref, {"tokens": new_balance, "updatedAt": now})
            else:
                new_balance = amount
                txn.set(ref, {"tokens": new_balance, "lastResetDate": now, "createdAt": now, "updatedAt": now})
            return new_balance

        if transaction is not None:
            return _txn(transaction)
        new_balance = run_transaction(self.db, _txn)
        logger.info(f"Added {amount} tokens to {user_id}, balance {new_balance}")
        return new_balance

    def set(self, user_id: str, amount: int) -> int:
        """Set an absolute balance (admin)."""
        if amount < 0:
            raise ValidationError("Token balance cannot be negative")
        now = utcnow()
        self.document(user_id).set({"tokens": amount, "updatedAt": now}, merge=True)
        logger.info(f"Set tokens for {user_id} to {amount}")
        return amount

    def get_token_data(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self.get_by_id(user_id)
