from fastapi import APIRouter
from resumerank.controllers import auth_controller
from resumerank.controllers import job_controller
from resumerank.controllers import candidate_controller
from resumerank.controllers import analysis_controller
from resumerank.controllers import admin_controller
from resumerank.controllers import dashboard_controller
from resumerank.controllers import notification_controller
from resumerank.controllers import realtime_controller


router = APIRouter()


router.include_router(auth_controller.router, prefix="/auth", tags=["Auth"])
router.include_router(job_controller.router, prefix="/jobs", tags=["Jobs"])
router.include_router(candidate_controller.router, prefix="", tags=["Candidates"])
router.include_router(analysis_controller.router, prefix="/analysis", tags=["Analysis"])
router.include_router(admin_controller.router, prefix="/admin", tags=["Admin"])
router.include_router(dashboard_controller.router, prefix="", tags=["Dashboard"])
router.include_router(notification_controller.router, prefix="/notifications", tags=["Notifications"])
router.include_router(realtime_controller.router, tags=["WebSocket"])
