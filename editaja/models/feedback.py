"""
Feedback Model
User feedback submitted from the feedback dialog.
"""

from enum import Enum


class FeedbackCategory(str, Enum):
    GENERAL = "general"
    BUG = "bug"
    FEATURE = "feature"
    BETA_TESTING = "beta-testing"


class FeedbackStatus(str, Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"


CATEGORY_LABELS = {
    FeedbackCategory.GENERAL: "General",
    FeedbackCategory.BUG: "Bug report",
    FeedbackCategory.FEATURE: "Feature request",
    FeedbackCategory.BETA_TESTING: "Beta testing",
}
