import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, Request, Response
from fastapi.security import APIKeyCookie
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from config import Settings
from errors import AuthenticationError, InternalError, InvalidTokenError, TokenExpiredError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not password or not hashed:
        return False
    try:
        return pwd_context.verify(password, hashed)
    except (ValueError, TypeError):
        # unknown or malformed hash
        return False


class TokenService:
    """Issues and verifies signed, self-contained session tokens."""

    def __init__(self, settings: Settings):
        self.secret = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.default_ttl = timedelta(minutes=settings.token_ttl_minutes)

    def issue(self, claims: Dict[str, Any], ttl: Optional[timedelta] = None) -> str:
        to_encode = claims.copy()
        expire = datetime.now(timezone.utc) + (ttl if ttl is not None else self.default_ttl)
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        """Decode ``token``.

        Raises TokenExpiredError for a well-formed token past its expiry and
        InvalidTokenError for anything malformed or signed with another key.
        """
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError:
            raise InvalidTokenError()


# Session cookie

def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        httponly=True,
        samesite="strict",
        secure=settings.cookie_secure,
        max_age=settings.token_ttl_minutes * 60,
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.cookie_name,
        httponly=True,
        samesite="strict",
        secure=settings.cookie_secure,
    )


# Auth dependency

# Only used so the cookie shows up as a security scheme in the OpenAPI docs.
cookie_scheme = APIKeyCookie(name=Settings.cookie_name, auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_current_user(
    request: Request,
    _cookie: Optional[str] = Depends(cookie_scheme),
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
) -> Dict[str, Any]:
    token = request.cookies.get(settings.cookie_name)
    if not token or not isinstance(token, str) or not token.strip():
        logger.debug("Rejected %s %s: no session cookie", request.method, request.url.path)
        raise AuthenticationError()

    try:
        claims = tokens.verify(token)
    except AuthenticationError as exc:
        logger.debug("Rejected %s %s: %s", request.method, request.url.path, exc.message)
        raise
    except Exception:
        logger.exception("Unexpected error while verifying session token")
        raise InternalError("Authentication error")

    request.state.user = claims
    return claims
