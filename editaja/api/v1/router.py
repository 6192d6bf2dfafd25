"""Main v1 API router that aggregates all sub-routers."""

from fastapi import APIRouter, Depends

from editaja.dependencies import get_current_admin

from .admin import router as admin_router
from .admin_billing import router as admin_billing_router
from .admin_feedback import router as admin_feedback_router
from .admin_prompts import router as admin_prompts_router
from .admin_settings import router as admin_settings_router
from .admin_styles import router as admin_styles_router
from .admin_users import router as admin_users_router
from .auth import router as auth_router
from .beta_tester import router as beta_tester_router
from .favorites import router as favorites_router
from .feedback import router as feedback_router
from .generation import router as generation_router
from .midtrans import router as midtrans_router
from .settings import router as settings_router
from .styles import router as styles_router
from .styles import trending_router
from .topups import router as topups_router
from .tracking import router as tracking_router
from .upload import router as upload_router
from .users import router as users_router

# Main v1 router
router = APIRouter(prefix="/api/v1")

# Public and user routes
router.include_router(auth_router, prefix="/auth", tags=["Auth"])
router.include_router(users_router, prefix="/users", tags=["Users"])
router.include_router(styles_router, prefix="/styles", tags=["Styles"])
router.include_router(trending_router, prefix="/trending-styles", tags=["Styles"])
router.include_router(favorites_router, prefix="/favorites", tags=["Favorites"])
router.include_router(generation_router, tags=["Generation"])
router.include_router(upload_router, tags=["Upload"])
router.include_router(midtrans_router, prefix="/midtrans", tags=["Midtrans"])
router.include_router(topups_router, prefix="/topups", tags=["Topups"])
router.include_router(beta_tester_router, prefix="/beta-tester", tags=["Beta Tester"])
router.include_router(feedback_router, prefix="/feedback", tags=["Feedback"])
router.include_router(tracking_router, tags=["Tracking"])
router.include_router(settings_router, prefix="/settings", tags=["Settings"])

# Admin routes
_admin = [Depends(get_current_admin)]
router.include_router(admin_router, prefix="/admin", tags=["Admin"], dependencies=_admin)
router.include_router(admin_users_router, prefix="/admin/users", tags=["Admin"], dependencies=_admin)
router.include_router(admin_styles_router, prefix="/admin/styles", tags=["Admin"], dependencies=_admin)
router.include_router(admin_billing_router, prefix="/admin/billing", tags=["Admin"], dependencies=_admin)
router.include_router(admin_feedback_router, prefix="/admin/feedback", tags=["Admin"], dependencies=_admin)
router.include_router(admin_settings_router, prefix="/admin/settings", tags=["Admin"], dependencies=_admin)
router.include_router(admin_prompts_router, prefix="/admin/prompt-catalog", tags=["Admin"], dependencies=_admin)

__all__ = ["router"]
