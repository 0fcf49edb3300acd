from services.refresh_store import RefreshTokenStore
from services.session_service import SessionService, TokenPair
from utils.security import CredentialHasher, TokenSigner


def create_session_service(config, storage) -> SessionService:
    """Wire the session service from a Flask config mapping."""
    hasher = CredentialHasher(
        time_cost=config.get("ARGON2_TIME_COST"),
        memory_cost=config.get("ARGON2_MEMORY_COST"),
        parallelism=config.get("ARGON2_PARALLELISM"),
    )
    signer = TokenSigner(
        access_secret=config["JWT_ACCESS_SECRET"],
        refresh_secret=config["JWT_REFRESH_SECRET"],
        algorithm=config.get("JWT_ALGORITHM", "HS256"),
        access_ttl=config["ACCESS_TOKEN_EXPIRES"],
        refresh_ttl=config["REFRESH_TOKEN_EXPIRES"],
        issuer=config.get("JWT_ISSUER", "endlleestube-api"),
    )
    store = RefreshTokenStore(storage, config["REFRESH_TOKEN_HASH_KEY"])
    return SessionService(storage, hasher, signer, store)


__all__ = ["create_session_service", "SessionService", "TokenPair"]
