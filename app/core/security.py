import hashlib
import bcrypt

# sha256 first so long passwords are not silently cut at bcrypt's 72 bytes
def _prehash(password: str) -> bytes:
    return hashlib.sha256(password.encode("utf-8")).hexdigest().encode()

def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(_prehash(password), bcrypt.gensalt())
    return hashed.decode()

def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(_prehash(password), hashed_password.encode())
    except ValueError:
        # malformed hash in the db
        return False
