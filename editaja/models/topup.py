"""
Top-up Models
Diamond packages and the Midtrans payment attempts made to buy them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from editaja.utils.timeutils import utcnow


class TopupStatus(str, Enum):
    """Top-up transaction status (mirrors Midtrans transaction states)."""
    PENDING = "pending"
    SETTLEMENT = "settlement"
    EXPIRE = "expire"
    CANCEL = "cancel"
    DENY = "deny"
    REFUND = "refund"


class TopupPlan(BaseModel):
    """Diamond package offered in the top-up dialog."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    diamonds: int = Field(gt=0, description="Diamonds granted")
    price: int = Field(gt=0, description="Price in IDR")
    anchor_price: Optional[int] = Field(default=None, alias="anchorPrice", description="Crossed-out price")
    bonus: int = Field(default=0, ge=0, description="Bonus diamonds")
    popular: bool = Field(default=False, description="Highlight as the popular choice")
    order: int = Field(default=0, description="Display order")

    @model_validator(mode="after")
    def validate_anchor(self) -> "TopupPlan":
        """Anchor price must be higher than the selling price."""
        if self.anchor_price is not None and self.anchor_price <= self.price:
            raise ValueError("Anchor price must be greater than price")
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert plan to dictionary for Firestore."""
        return self.model_dump(by_alias=True)


DEFAULT_PLANS: List[TopupPlan] = [
    TopupPlan(diamonds=100, price=10000, anchor_price=15000, order=1),
    TopupPlan(diamonds=250, price=22500, anchor_price=37500, bonus=25, popular=True, order=2),
    TopupPlan(diamonds=500, price=40000, anchor_price=75000, bonus=100, order=3),
]


class TopupTransaction(BaseModel):
    """Midtrans payment attempt stored in `topupTransactions`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str = Field(alias="userId")
    user_email: Optional[str] = Field(default=None, alias="userEmail")
    order_id: str = Field(alias="orderId")
    package_id: str = Field(alias="packageId")
    diamonds: int = Field(gt=0)
    bonus: int = Field(default=0, ge=0)
    price: int = Field(gt=0)
    status: TopupStatus = TopupStatus.PENDING
    payment_method: Optional[str] = Field(default=None, alias="paymentMethod")
    midtrans_transaction_id: Optional[str] = Field(default=None, alias="midtransTransactionId")
    snap_token: Optional[str] = Field(default=None, alias="snapToken")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")

    @property
    def total_diamonds(self) -> int:
        return self.diamonds + self.bonus

    @property
    def item_name(self) -> str:
        if self.bonus:
            return f"{self.diamonds} Diamonds + {self.bonus} Bonus"
        return f"{self.diamonds} Diamonds"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to Firestore field names (None fields dropped)."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        data["status"] = self.status.value
        return data
