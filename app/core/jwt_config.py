import jwt
from jwt import ExpiredSignatureError, InvalidTokenError
from datetime import datetime, timedelta, timezone
from app.core.config import settings
from fastapi import HTTPException, Request

def create_access_token(data: dict, expires_min: int | None = None):
    to_encode = data.copy()
    minutes = expires_min if expires_min is not None else settings.ACCESS_TOKEN_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm = settings.JWT_ALGO)

def decode_token(token : str):
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms = [settings.JWT_ALGO]
        )

        return payload
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired")
    except InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid Token")

def get_token_from_cookie(request : Request) -> str:
    token = request.cookies.get("access_token")
    if not token:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.split(" ", 1)[1]

    if not token:
        raise HTTPException(401, "Unauthorized access")

    return token.strip()
