from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel
from medibook.core.config import settings

http_bearer = HTTPBearer(auto_error=False)

class Principal(BaseModel):
    user_id: int
    clinic_id: int | None = None
    roles: list[str] = []
    scopes: list[str] = []

def _decode_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG], audience=settings.REQUIRED_AUDIENCE)
        return payload
    except JWTError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}")

def issue_token(user_id: int, *, clinic_id: int | None = None, roles: list[str] | None = None, scopes: list[str] | None = None) -> str:
    claims = {"sub": str(user_id), "roles": roles or [], "scopes": scopes or []}
    if clinic_id is not None:
        claims["clinic_id"] = clinic_id
    if settings.REQUIRED_AUDIENCE:
        claims["aud"] = settings.REQUIRED_AUDIENCE
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALG)

def peek_clinic_id(authorization: str | None) -> int | None:
    """Read the tenant marker from a bearer token without verifying it.

    Runs before identity resolution; the signature is verified later by
    get_principal.
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    try:
        claims = jwt.get_unverified_claims(authorization[7:].strip())
    except JWTError:
        return None
    raw = claims.get("clinic_id")
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None

async def get_principal(creds: HTTPAuthorizationCredentials | None = Depends(http_bearer)) -> Principal:
    # In local/dev, allow missing token and act as an admin
    if creds is None and settings.ENV in ("local", "test"):
        return Principal(user_id=0, roles=["admin"], scopes=["*"])
    if creds is None:
        raise HTTPException(status_code=401, detail="Missing token")

    data = _decode_token(creds.credentials)
    user_id = int(str(data.get("sub") or data.get("user_id")))
    clinic_id = data.get("clinic_id")
    roles = data.get("roles", [])
    scopes = data.get("scopes", [])
    return Principal(user_id=user_id, clinic_id=int(clinic_id) if clinic_id is not None else None, roles=roles, scopes=scopes)

def require_scopes(*needed: str):
    def dep(principal: Principal = Depends(get_principal)) -> Principal:
        if "*" in principal.scopes:
            return principal
        if not set(needed).issubset(set(principal.scopes)):
            raise HTTPException(status_code=403, detail="Insufficient scopes")
        return principal
    return dep
