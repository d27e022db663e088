import base64
import hashlib
import secrets
from typing import NamedTuple

URL_SAFE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~"
CODE_VERIFIER_LENGTH = 128
STATE_LENGTH = 32


class PKCEPair(NamedTuple):
    code_verifier: str
    code_challenge: str


def generate_random_string(length: int) -> str:
    # byte % 66 is slightly biased towards the first 58 symbols
    return "".join(URL_SAFE_ALPHABET[byte % len(URL_SAFE_ALPHABET)] for byte in secrets.token_bytes(length))


def generate_state_token() -> str:
    return generate_random_string(STATE_LENGTH)


def generate_code_challenge(code_verifier: str) -> str:
    digest = hashlib.sha256(code_verifier.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("utf-8")


def generate_pkce() -> PKCEPair:
    code_verifier = generate_random_string(CODE_VERIFIER_LENGTH)
    return PKCEPair(code_verifier=code_verifier, code_challenge=generate_code_challenge(code_verifier))
