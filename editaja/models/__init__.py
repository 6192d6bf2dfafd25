"""
edit Aja Models
Firestore document representations and data models.
"""

from editaja.models.feedback import FeedbackCategory, FeedbackStatus
from editaja.models.generation import ANONYMOUS_USER_ID, GenerationLocation, GenerationModel
from editaja.models.settings import SETTINGS_MODELS
from editaja.models.style import StyleModel, StyleStatus
from editaja.models.topup import TopupPlan, TopupStatus, TopupTransaction
from editaja.models.user import UserModel

__all__ = [
    "ANONYMOUS_USER_ID",
    "FeedbackCategory",
    "FeedbackStatus",
    "GenerationLocation",
    "GenerationModel",
    "SETTINGS_MODELS",
    "StyleModel",
    "StyleStatus",
    "TopupPlan",
    "TopupStatus",
    "TopupTransaction",
    "UserModel",
]
