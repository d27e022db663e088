from viberx.protocols.user import UserProtocol, UserStoreProtocol

__all__ = ["UserProtocol", "UserStoreProtocol"]
