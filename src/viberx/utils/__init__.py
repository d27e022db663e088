from viberx.utils.crypto import generate_code_challenge, generate_pkce, generate_random_string, generate_state_token

__all__ = ["generate_code_challenge", "generate_pkce", "generate_random_string", "generate_state_token"]
