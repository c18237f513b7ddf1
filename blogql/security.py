"""
Credential module: password hashing and bearer-token issuance.

Passwords are hashed with bcrypt (random salt, configurable cost).
Tokens are HS256 JWTs whose ``sub`` claim is the user id.  The signing
key is passed in explicitly (see ``Credentials.from_settings``) and
identified by a ``kid`` header, so a key can be retired without
invalidating every token at once: retired keys are still accepted for
verification, only the current key signs.
"""
import logging
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from blogql.errors import InvalidToken, ValidationError

logger = logging.getLogger(__name__)


class Credentials:
    """
    Hashes/verifies passwords and issues/verifies bearer tokens.

    Instances are immutable after construction and safe to share across
    concurrent requests.
    """

    def __init__(
        self,
        secret_key: str,
        key_id: str = "v1",
        retired_keys: dict[str, str] | None = None,
        algorithm: str = "HS256",
        rounds: int = 10,
        token_ttl: int | None = None,
    ) -> None:
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self.key_id = key_id
        self.algorithm = algorithm
        self.rounds = rounds
        self.token_ttl = token_ttl
        self._signing_key = secret_key
        self._verification_keys = {**(retired_keys or {}), key_id: secret_key}

    @classmethod
    def from_settings(cls, settings) -> "Credentials":
        return cls(
            secret_key=settings.SECRET_KEY,
            key_id=settings.SECRET_KEY_ID,
            retired_keys=settings.RETIRED_SECRET_KEYS,
            algorithm=settings.JWT_ALGORITHM,
            rounds=settings.BCRYPT_ROUNDS,
            token_ttl=settings.TOKEN_TTL_SECONDS,
        )

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    def hash_password(self, password: str) -> str:
        """
        Return a salted bcrypt hash of *password*.

        Raises ``ValidationError`` for input bcrypt refuses (NUL bytes,
        more than 72 bytes on recent bcrypt releases).
        """
        try:
            hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds))
        except ValueError as exc:
            raise ValidationError(f"Unusable password: {exc}") from exc
        return hashed.decode("utf-8")

    def verify_password(self, password: str, hashed: str) -> bool:
        """
        Return whether *password* matches *hashed*.

        ``bcrypt.checkpw`` compares in constant time.  A corrupt stored
        hash is reported as a mismatch rather than raised.
        """
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError as exc:
            logger.warning("Password verification against unusable hash: %s", exc)
            return False

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def issue_token(self, user_id: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {"sub": str(user_id), "iat": now}
        if self.token_ttl is not None:
            payload["exp"] = now + timedelta(seconds=self.token_ttl)
        return jwt.encode(
            payload,
            self._signing_key,
            algorithm=self.algorithm,
            headers={"kid": self.key_id},
        )

    def verify_token(self, token: str) -> int:
        """
        Verify *token* and return the user id it was issued for.

        Raises ``InvalidToken`` on a bad signature, an unknown key id, an
        expired token or a malformed payload.
        """
        try:
            header = jwt.get_unverified_header(token)
            key = self._verification_keys.get(header.get("kid", self.key_id))
            if key is None:
                raise InvalidToken("Token signed with an unknown key")
            payload = jwt.decode(
                token,
                key,
                algorithms=[self.algorithm],
                options={"require": ["sub"]},
            )
            return int(payload["sub"])
        except InvalidToken:
            raise
        except jwt.ExpiredSignatureError as exc:
            raise InvalidToken("Token has expired") from exc
        except (jwt.InvalidTokenError, ValueError, TypeError) as exc:
            logger.info("Rejected bearer token: %s", exc)
            raise InvalidToken() from exc
