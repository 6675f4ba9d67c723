import hashlib


def gravatar_hash(email: str | None) -> str | None:
    """
    Public avatar lookup key for an email address.

    The address is lowercased before hashing so that differently-cased
    spellings of the same mailbox share an avatar. md5 is what the avatar
    service expects; the digest is not a secret.
    """
    if email is None:
        return None
    return hashlib.md5(email.lower().encode("utf-8")).hexdigest()  # nosec S324
