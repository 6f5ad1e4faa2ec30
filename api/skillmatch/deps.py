from functools import lru_cache

from fastapi import Header, HTTPException

from .config import ADMIN_TOKEN
from .repo import SqlMatchStore
from .services.batch import BatchGenerator
from .services.matching import MatchingService
from .services.notifications import OutboxNotifier


def validate_admin_token(token: str | None, admin_token: str | None) -> None:
    if not admin_token or not token or token != admin_token:
        raise HTTPException(status_code=401, detail="Invalid admin token")


def require_admin_token(x_admin_token: str | None = Header(default=None, alias="X-Admin-Token")) -> None:
    validate_admin_token(x_admin_token, ADMIN_TOKEN)


@lru_cache
def get_match_store() -> SqlMatchStore:
    return SqlMatchStore()


@lru_cache
def get_matching_service() -> MatchingService:
    return MatchingService(get_match_store())


@lru_cache
def get_batch_generator() -> BatchGenerator:
    # One generator per process so the run guard covers every trigger.
    return BatchGenerator(get_matching_service(), notifier=OutboxNotifier())
