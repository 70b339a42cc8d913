from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from onboarding.core.schemas.auth import CurrentUser
from onboarding.core.setting import config

# Tokens are issued by the identity service; this API only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

async def get_current_user(token: str = Depends(oauth2_scheme)) -> CurrentUser:
    """
    Dependency that decodes the JWT token into the caller's identity.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        raise credentials_exception

    emp_id = payload.get("sub")
    role = payload.get("role")
    if emp_id is None or role is None:
        raise credentials_exception

    return CurrentUser(
        emp_id=emp_id,
        role=role,
        role2=payload.get("role2"),
        email=payload.get("email"),
        full_name=payload.get("full_name"),
    )

def require_roles(*allowed_roles: str):
    """
    Dependency factory that checks if the current user has one of the allowed roles.
    Checks both 'role' and 'role2'.
    """
    async def role_checker(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        is_authorized = current_user.role in allowed_roles

        # Secondary role, e.g. 'role' is "Production" but 'role2' is "HR"
        if not is_authorized and current_user.role2:
            is_authorized = current_user.role2 in allowed_roles

        if not is_authorized:
            roles_str = ", ".join(allowed_roles)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Operation not permitted. Requires one of the following roles: {roles_str}",
            )

        return current_user

    return role_checker
