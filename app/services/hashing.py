"""Password hashing."""

import base64
import hashlib
import hmac

import bcrypt

from app.config import get_settings


class Hasher:
    """Interface for one-way password hashing."""

    name = "base"

    def hash(self, plaintext: str) -> str:
        """Return the digest to store for ``plaintext``."""
        raise NotImplementedError

    def verify(self, plaintext: str, digest: str) -> bool:
        """Check ``plaintext`` against a stored digest."""
        raise NotImplementedError


class Sha256Hasher(Hasher):
    """Unsalted SHA-256, URL-safe base64 encoded.

    Deterministic: the same password always yields the same digest, which is
    what legacy rows were written with. It offers no protection against
    precomputed tables, so new deployments should use ``BcryptHasher``.
    """

    name = "sha256"

    def hash(self, plaintext: str) -> str:
        digest = hashlib.sha256(plaintext.encode("utf-8")).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii")

    def verify(self, plaintext: str, digest: str) -> bool:
        return hmac.compare_digest(self.hash(plaintext), digest)


class BcryptHasher(Hasher):
    """Salted bcrypt hashing."""

    name = "bcrypt"

    def hash(self, plaintext: str) -> str:
        return bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("utf-8"))
        except ValueError:
            # Digest is not a bcrypt hash (e.g. a legacy sha256 row)
            return False


HASHERS: dict[str, type[Hasher]] = {
    Sha256Hasher.name: Sha256Hasher,
    BcryptHasher.name: BcryptHasher,
}


def create_hasher(name: str) -> Hasher:
    """Build a hasher by name. Raises ValueError for unknown names."""
    try:
        return HASHERS[name.lower().strip()]()
    except KeyError:
        raise ValueError(f"Unknown password hasher '{name}'. Allowed: {', '.join(sorted(HASHERS))}") from None


_hasher: Hasher | None = None


def get_hasher() -> Hasher:
    """Get singleton hasher configured by PASSWORD_HASHER."""
    global _hasher
    if _hasher is None:
        _hasher = create_hasher(get_settings().PASSWORD_HASHER)
    return _hasher
