from coworks.utils.security import TokenType, create_access_token, decode_token

__all__ = [
    "TokenType",
    "create_access_token",
    "decode_token",
]
