import time
from typing import Optional, Dict, Any

import jwt


def create_access_token(
    user_id: str,
    secret: str,
    ttl_seconds: int = 60 * 60 * 24 * 7,
    claims: Optional[Dict[str, Any]] = None,
) -> str:
    now = int(time.time())
    payload = dict(claims or {})
    payload.update({
        "sub": str(user_id),
        "iat": now,
        "exp": now + int(ttl_seconds),
        "type": "access",
    })
    return jwt.encode(payload, secret, algorithm="HS256")


def decode_token(token: str, secret: str) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(token, secret, algorithms=["HS256"])
    except jwt.PyJWTError:
        return None


def get_bearer_token(auth_header: str) -> Optional[str]:
    if not auth_header:
        return None
    parts = auth_header.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None
