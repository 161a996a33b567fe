# melzao/security.py
from werkzeug.security import generate_password_hash


def hash_secret(plaintext: str) -> str:
    """Turn a plaintext secret into the verifier stored in users.password_hash."""
    return generate_password_hash(plaintext)
