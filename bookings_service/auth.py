import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_USER = "user"

# The two built-in accounts: username -> (password, role)
CREDENTIALS: Dict[str, tuple] = {
    "admin": ("admin", ROLE_ADMIN),
    "user": ("user", ROLE_USER),
}

security = HTTPBearer()


def authenticate(username: str, password: str) -> Optional[Dict[str, str]]:
    """
    Check a username/password pair against the built-in accounts.

    Parameters
    ----------
    username : str
        Username provided by the client.
    password : str
        Plaintext password provided by the client.

    Returns
    -------
    Optional[Dict[str, str]]
        ``{"username", "role"}`` if the credentials match, otherwise None.
    """
    entry = CREDENTIALS.get(username)
    if entry is None:
        return None
    expected_password, role = entry
    if not hmac.compare_digest(password.encode("utf-8"), expected_password.encode("utf-8")):
        return None
    return {"username": username, "role": role}


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT access token.

    Parameters
    ----------
    data : dict
        Claims to embed in the token (e.g. 'sub', 'role').
    expires_delta : Optional[timedelta]
        Optional custom expiration interval.

    Returns
    -------
    str
        Encoded JWT string.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


async def get_current_user_claims(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Dict[str, Any]:
    """
    Decode a JWT bearer token and extract user claims.

    The token is expected in the Authorization header as a Bearer token.

    Parameters
    ----------
    credentials : HTTPAuthorizationCredentials
        Authorization header parsed by FastAPI's HTTPBearer.

    Returns
    -------
    Dict[str, Any]
        A dictionary containing 'username' and 'role'.

    Raises
    ------
    HTTPException
        If the token is invalid, expired, or names an unknown account.
    """
    token = credentials.credentials

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        username = payload.get("sub")
        role = payload.get("role")
        if username is None or role is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    # Token role must still match the account it was issued for
    entry = CREDENTIALS.get(username)
    if entry is None or entry[1] != role:
        raise credentials_exception

    return {"username": username, "role": role}


def require_roles(*allowed_roles: str) -> Callable:
    """
    Build a dependency that enforces a set of allowed roles.

    Parameters
    ----------
    allowed_roles : str
        One or more role names that are permitted to access a route.

    Returns
    -------
    Callable
        A FastAPI dependency that checks the caller's role and raises
        HTTP 403 if access is not allowed.
    """

    async def dependency(claims: Dict[str, Any] = Depends(get_current_user_claims)) -> Dict[str, Any]:
        if claims["role"] not in allowed_roles:
            logger.warning(
                "Role %s denied (needs one of %s)", claims["role"], ", ".join(allowed_roles)
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions",
            )
        return claims

    return dependency


admin_only = require_roles(ROLE_ADMIN)
any_user = require_roles(ROLE_ADMIN, ROLE_USER)
