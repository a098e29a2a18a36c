from fastapi import APIRouter

from pressure_monitor.routers import connection, pressure

router = APIRouter()

# include sub-routers
router.include_router(connection.router)
router.include_router(pressure.router)
