import hashlib


def sha3_256_hex(b: bytes) -> str:
    return hashlib.sha3_256(b).hexdigest()


def sha256_text(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()
