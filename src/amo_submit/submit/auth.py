"""
JWT minting for the review service API.

Every request carries a freshly signed, short-lived token; tokens are never
cached or reused.
"""

import time
import uuid
from typing import Callable, Dict, Optional

import jwt

from amo_submit.constants import JWT_ALGORITHM

from .interfaces import Credentials


def mint_token(
    credentials: Credentials,
    now: Optional[Callable[[], float]] = None,
) -> str:
    """
    Sign a new HS256 token for `credentials`.

    The claims are the issuer key (`iss`), a random nonce (`jti`) so two tokens
    minted in the same second still differ, the issue time (`iat`) and the expiry
    (`exp`), `jwt_expires_in` seconds after issue.

    Parameters:
        credentials (Credentials): Key, secret and token lifetime.
        now (Optional[Callable[[], float]]): Source of the current Unix time; defaults to time.time.

    Returns:
        str: The encoded token.
    """
    issued_at = int((now or time.time)())
    payload = {
        "iss": credentials.api_key,
        "jti": str(uuid.uuid4()),
        "iat": issued_at,
        "exp": issued_at + credentials.jwt_expires_in,
    }
    return jwt.encode(payload, credentials.api_secret, algorithm=JWT_ALGORITHM)


def authorization_headers(token: str) -> Dict[str, str]:
    return {
        "Authorization": f"JWT {token}",
        "Accept": "application/json",
    }
