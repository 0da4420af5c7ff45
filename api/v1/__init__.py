from fastapi import APIRouter

from api.v1.automation_runs import router as automation_runs_router
from api.v1.automations import router as automations_router
from api.v1.executions import router as executions_router

router = APIRouter(prefix="/v1")
router.include_router(automations_router)
router.include_router(automation_runs_router)
router.include_router(executions_router)
