import secrets

from fastapi import Header, HTTPException, Request


async def verify_api_key(request: Request, x_api_key: str = Header(...)) -> None:
    """Reject requests whose X-Api-Key header does not equal APP_API_KEY.

    Raises:
        HTTPException: 401 on a wrong key. A missing header is a 422 from FastAPI.
    """
    expected_key = request.app.state.helper_config.get_string_val("APP_API_KEY")
    if not secrets.compare_digest(x_api_key.encode(), expected_key.encode()):
        request.app.state.logging.warning("Rejected %s %s: invalid API key.", request.method, request.url.path)
        raise HTTPException(status_code=401, detail="Invalid API key")
