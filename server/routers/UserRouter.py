from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from server.dependencies.auth import verify_api_key
from server.models.responses import UserLoginAccepted

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/{user_id}/login", status_code=202)
async def user_login(request: Request, user_id: str, _: None = Depends(verify_api_key)) -> JSONResponse:
    """Sync all active stores of a user.

    Runs as a background task so the login response is returned immediately.
    """
    request.app.state.logging.info("Login sync requested for user %s.", user_id)
    lifecycle_service = request.app.state.lifecycle_service
    request.app.state.background_runner.spawn(lifecycle_service.on_user_login(user_id), name=f"login-sync-{user_id}")
    return JSONResponse(status_code=202, content=UserLoginAccepted(user_id=user_id).model_dump())
