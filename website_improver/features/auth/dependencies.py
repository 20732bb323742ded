from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from website_improver.features.auth.utils.security import decode_access_token
from website_improver.platform.exceptions import UnauthorizedError

security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Dependency returning the opaque user id of the authenticated caller.

    Session management belongs to the identity provider; this only verifies
    the bearer token it issued and reads the `sub` claim.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()

    try:
        payload = decode_access_token(credentials.credentials)
    except ValueError as e:
        raise UnauthorizedError(str(e))

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid authentication credentials")

    return str(user_id)
