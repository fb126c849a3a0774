"""Auth core: credential store, refresh-token ledger and the auth service."""
from services.auth_service import AuthResult, AuthService, TokenPair
from services.credential_store import UserStore
from services.token_ledger import RefreshTokenLedger

__all__ = ["AuthResult", "AuthService", "TokenPair", "UserStore", "RefreshTokenLedger"]
