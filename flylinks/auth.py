import hmac
from datetime import datetime, timedelta, timezone
from typing import Mapping

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader, OAuth2PasswordBearer
from jose import JWTError, jwt

from flylinks import config

if not config.SECRET_KEY:
    raise RuntimeError("SECRET_KEY is not set")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login", auto_error=False)
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


class Authenticator:
    """Turns request credentials into a user name, or None on failure."""

    def authenticate(self, credentials: Mapping[str, str]) -> str | None:
        raise NotImplementedError


class ApiKeyAuthenticator(Authenticator):
    """Single shared key; there are no users, everybody is DEFAULT_USER."""

    def __init__(self, api_key: str):
        if not api_key:
            raise RuntimeError("Set API_KEY in .env to use the api_key strategy")
        self.api_key = api_key

    def authenticate(self, credentials):
        # The login form carries the key in its password field
        key = credentials.get("api_key") or credentials.get("password") or ""
        if hmac.compare_digest(key.encode(), self.api_key.encode()):
            return config.DEFAULT_USER
        return None


class PasswordAuthenticator(Authenticator):
    def __init__(self, username: str, password: str):
        if not username or not password:
            raise RuntimeError("Set ADMIN_USERNAME/ADMIN_PASSWORD in .env to use the password strategy")
        self.username = username
        self.password = password

    def authenticate(self, credentials):
        username = credentials.get("username") or ""
        password = credentials.get("password") or ""
        if hmac.compare_digest(username.encode(), self.username.encode()) and \
           hmac.compare_digest(password.encode(), self.password.encode()):
            return username
        return None


def build_authenticator(strategy: str = config.AUTH_STRATEGY) -> Authenticator:
    if strategy == "api_key":
        return ApiKeyAuthenticator(config.API_KEY)
    if strategy == "password":
        return PasswordAuthenticator(config.ADMIN_USERNAME, config.ADMIN_PASSWORD)
    raise RuntimeError(f"Unknown AUTH_STRATEGY {strategy!r}")


authenticator = build_authenticator()


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def user_from_token(token: str) -> str | None:
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub")


def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    api_key: str | None = Depends(api_key_header),
) -> str:
    api_key = api_key or request.query_params.get("api_key")
    if api_key:
        user = authenticator.authenticate({"api_key": api_key})
        if not user:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
        return user

    # Bearer header for API clients, cookie for the browser
    token = token or request.cookies.get("access_token")
    user = user_from_token(token) if token else None
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user
