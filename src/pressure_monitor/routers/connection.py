from fastapi import APIRouter, HTTPException

from pressure_monitor.core.services.connection_controller import connection_controller
from pressure_monitor.schemas import ConnectionStateResponse, ConnectRequest

router = APIRouter(prefix="/connection", tags=["connection"])


@router.get("/state", response_model=ConnectionStateResponse)
async def get_connection_state() -> ConnectionStateResponse:
    """
    Get the current connection state.

    - **disconnected**: no session, or the last one was closed on request.
    - **connecting**: TCP connection to the device in progress.
    - **connected**: readings are being received.
    - **error**: the last session failed; `message` tells why. Call POST /connect to retry.
    """
    state = connection_controller.get_state()
    return ConnectionStateResponse(status=state.status, message=state.message)


@router.post("/connect", status_code=204, responses={
    400: {
        "description": "Empty device address.",
        "content": {
            "application/json": {
                "example": {"detail": "Device address must not be empty"}
            }
        }
    },
    409: {
        "description": "A session is already connecting or connected.",
        "content": {
            "application/json": {
                "example": {"detail": "Already connecting or connected"}
            }
        }
    }
})
async def connect(request: ConnectRequest) -> None:
    """
    Open a session with the pressure device on port 9000.

    Returns as soon as the session is started; poll GET /state to follow it
    from CONNECTING to CONNECTED or ERROR.
    """
    try:
        started = connection_controller.connect(request.address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not started:
        raise HTTPException(status_code=409, detail="Already connecting or connected")


@router.put("/disconnect", status_code=204)
async def disconnect() -> None:
    """
    Close the active session. Does nothing when no session is active.
    """
    connection_controller.disconnect()
