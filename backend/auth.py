from fastapi import Header, HTTPException, status

from errors import IdentityProviderError
from services import user_service


async def get_current_user_id(
    authorization: str | None = Header(default=None, convert_underscores=False),
) -> int:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing auth token"
        )
    token = authorization.split(" ", 1)[1]
    try:
        profile = await user_service.get_line_profile(token)
    except IdentityProviderError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid auth token"
        ) from exc
    user_id = await user_service.resolve_user_id(profile.user_id)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user"
        )
    return user_id
