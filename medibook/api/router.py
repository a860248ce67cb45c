from fastapi import APIRouter
from medibook.modules.directory.router import router as directory_router
from medibook.modules.schedule.router import router as schedule_router, search_router as schedule_search_router
from medibook.modules.doctors.router import router as doctors_router
from medibook.modules.reservations.router import router as reservations_router

api_router = APIRouter()
api_router.include_router(directory_router, prefix="/directory", tags=["directory"])
api_router.include_router(schedule_search_router, prefix="/directory", tags=["schedule"])
api_router.include_router(schedule_router, tags=["schedule"])
api_router.include_router(doctors_router, tags=["doctors"])
api_router.include_router(reservations_router, tags=["reservations"])
# every /clinics/{clinic_id}/... route runs against that clinic's own database

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
