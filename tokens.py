import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt


class InvalidToken(Exception):
    pass


class TokenService:
    """Issues and verifies stateless, expiring bearer tokens.

    There is no revocation list: a token stays valid until it expires or the
    signing secret changes.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expires: timedelta = timedelta(days=7),
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.expires = expires

    def issue(self, user_id: str, issued_at: Optional[datetime] = None) -> str:
        issued_at = issued_at or datetime.now(timezone.utc)
        to_encode = {
            "sub": user_id,
            "iat": issued_at,
            "exp": issued_at + self.expires,
            # tokens minted within the same second must still differ
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> str:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidToken("Token has expired") from exc
        except jwt.PyJWTError as exc:
            raise InvalidToken("Invalid token") from exc

        user_id = payload.get("sub")
        if not isinstance(user_id, str) or not user_id:
            raise InvalidToken("Invalid token payload")
        return user_id
