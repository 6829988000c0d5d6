from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordBearer
import jwt
from datetime import timedelta, datetime
from typing import Optional

from schemas import Identity
from settings import settings as app_settings


router = APIRouter()

ACCESS_TOKEN_EXPIRE_MINUTES = 60
PRIVILEGED_ROLES = {"admin", "moderator"}

# tokens are issued by the auth collaborator; we only read them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, app_settings.SECRET_KEY, algorithm=app_settings.JWT_ALGORITHM)


def identity_from_claims(claims: dict) -> Identity:
    account_id = claims.get("sub")
    if not account_id:
        raise HTTPException(status_code=401, detail="Invalid authentication")
    account_id = str(account_id)
    role = (claims.get("role") or "").lower()
    return Identity(
        account_id=account_id,
        display_name=claims.get("name"),
        is_privileged=role in PRIVILEGED_ROLES or account_id in app_settings.privileged_accounts,
    )


def decode_token_raw(token: str) -> Identity:
    try:
        claims = jwt.decode(token, app_settings.SECRET_KEY, algorithms=[app_settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    return identity_from_claims(claims)


def get_optional_identity(token: Optional[str] = Depends(oauth2_scheme)) -> Identity:
    """currentIdentity(): anonymous when no bearer token is sent."""
    if not token:
        return Identity()
    return decode_token_raw(token)


@router.get("/me", response_model=Identity)
def who_am_i(identity: Identity = Depends(get_optional_identity)):
    return identity
