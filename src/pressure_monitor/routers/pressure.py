from typing import Optional

from fastapi import APIRouter, HTTPException

from pressure_monitor.core.processing.smoothing import moving_average
from pressure_monitor.core.services.connection_controller import connection_controller
from pressure_monitor.schemas import ReadingResponse, ReadingsList

router = APIRouter(prefix="/pressure", tags=["pressure"])


@router.get("/latest", response_model=ReadingResponse, responses={
    404: {
        "description": "No reading received yet.",
        "content": {
            "application/json": {
                "example": {"detail": "No reading received yet"}
            }
        }
    }
})
async def get_latest_reading() -> ReadingResponse:
    """
    Get the most recent pressure reading (kPa).
    """
    latest = connection_controller.get_latest()
    if latest is None:
        raise HTTPException(status_code=404, detail="No reading received yet")
    return ReadingResponse(value=latest)


@router.get("/history", response_model=ReadingsList, responses={
    400: {
        "description": "Invalid smoothing window.",
        "content": {
            "application/json": {
                "example": {"detail": "window_size must be >= 1, got 0"}
            }
        }
    }
})
async def get_history(window: Optional[int] = None) -> ReadingsList:
    """
    Get the rolling history of readings (kPa), oldest first.
    With `window`, a moving average of that many readings is applied.
    """
    history = connection_controller.get_history()
    if window is not None:
        try:
            history = moving_average(history, window)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
    return ReadingsList(list=history, count=len(history), capacity=connection_controller.buffer_capacity)
