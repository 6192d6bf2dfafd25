"""
Beta Tester CRUD Operations
Registrations that grant a one-off free diamond allotment.
"""

from typing import Any, Dict, List, Optional

from editaja.crud.base import DESCENDING, BaseCRUD, run_transaction
from editaja.crud.settings import SettingsCRUD
from editaja.crud.tokens import TokenCRUD
from editaja.utils.exceptions import AuthorizationError, ValidationError
from editaja.utils.logger import get_logger
from editaja.utils.timeutils import utcnow

logger = get_logger(__name__)


class BetaTesterCRUD(BaseCRUD):
    """CRUD operations for `betaTesters/{uid}`."""

    def __init__(self, db, settings_crud: Optional[SettingsCRUD] = None):
        super().__init__(db)
        self.settings_crud = settings_crud or SettingsCRUD(db)

    @property
    def collection_name(self) -> str:
        return "betaTesters"

    def is_beta_tester(self, user_id: str) -> bool:
        """Registered and the programme is still open."""
        if not self.settings_crud.get_beta_tester().registration_enabled:
            return False
        return self.exists(user_id)

    def get_all(self) -> List[Dict[str, Any]]:
        return self.list(order_by="registeredAt", direction=DESCENDING)

    def register(self, user_id: str, email: str, token_crud: TokenCRUD) -> int:
        """
        Register a beta tester and credit the free diamonds.

        Returns:
            Diamonds granted.

        Raises:
            AuthorizationError: registration closed or full
            ValidationError: already registered
        """
        config = self.settings_crud.get_beta_tester()
        if not config.registration_enabled:
            raise AuthorizationError("Beta tester registration is currently disabled")
        if config.max_beta_testers is not None and self.count() >= config.max_beta_testers:
            raise AuthorizationError("Beta tester slots are full")

        free_tokens = config.free_tokens

        def _txn(transaction):
            ref = self.document(user_id)
            if ref.get(transaction=transaction).exists:
                raise ValidationError("You are already registered as a beta tester")
            token_crud.add(user_id, free_tokens, transaction=transaction)
            transaction.set(
                ref,
                {
                    "userId": user_id,
                    "email": email,
                    "registeredAt": utcnow(),
                    "freeTokensReceived": free_tokens,
                },
            )
            return free_tokens

        granted = run_transaction(self.db, _txn)
        logger.info(f"Beta tester registered: {user_id} (+{granted} diamonds)")
        return granted
