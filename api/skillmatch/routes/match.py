from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth.deps import get_current_user_id
from ..config import (
    MATCH_SUGGESTION_LIMIT,
    MATCH_SUGGESTION_MAX_LIMIT,
    RL_MATCH_DECISION_LIMIT,
    RL_MATCH_FILTER_LIMIT,
    RL_WINDOW_SECONDS,
)
from ..deps import get_matching_service
from ..domain import InteractionType
from ..errors import MatchingError
from ..schemas import (
    InteractionOut,
    MatchFiltersRequest,
    MatchListResponse,
    UnblockResponse,
    interaction_out,
    match_list_response,
)
from ..services.matching import MatchingService
from ..services.rate_limit import rate_limit_dependency

router = APIRouter()

RL_MATCH_DECISION = rate_limit_dependency("match_decision", RL_MATCH_DECISION_LIMIT, RL_WINDOW_SECONDS)
RL_MATCH_FILTER = rate_limit_dependency("match_filter", RL_MATCH_FILTER_LIMIT, RL_WINDOW_SECONDS)


def _http_error(exc: MatchingError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.detail)


def _decide(service: MatchingService, user_id: str, target_id: str, decision: InteractionType) -> InteractionOut:
    try:
        row = service.record_decision(user_id, target_id, decision)
    except MatchingError as exc:
        raise _http_error(exc)
    return interaction_out(row)


@router.get("/matches/suggestions", response_model=MatchListResponse)
def get_suggestions(
    limit: int = Query(default=MATCH_SUGGESTION_LIMIT, ge=1, le=MATCH_SUGGESTION_MAX_LIMIT),
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service),
) -> MatchListResponse:
    try:
        matches = service.suggest_matches(user_id, limit=limit)
    except MatchingError as exc:
        raise _http_error(exc)
    return match_list_response(matches)


@router.post("/matches/filter", response_model=MatchListResponse, dependencies=[RL_MATCH_FILTER])
def filter_suggestions(
    payload: MatchFiltersRequest,
    limit: int = Query(default=MATCH_SUGGESTION_LIMIT, ge=1, le=MATCH_SUGGESTION_MAX_LIMIT),
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service),
) -> MatchListResponse:
    try:
        filters = payload.to_filters()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    try:
        matches = service.suggest_matches(user_id, filters=filters, limit=limit)
    except MatchingError as exc:
        raise _http_error(exc)
    return match_list_response(matches)


@router.get("/matches/favorites", response_model=MatchListResponse)
def get_favorites(
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service),
) -> MatchListResponse:
    try:
        matches = service.list_favorites(user_id)
    except MatchingError as exc:
        raise _http_error(exc)
    return match_list_response(matches)


@router.post("/matches/{target_id}/favorite", response_model=InteractionOut, dependencies=[RL_MATCH_DECISION])
def favorite_match(
    target_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service),
) -> InteractionOut:
    return _decide(service, user_id, target_id, InteractionType.FAVORITE)


@router.post("/matches/{target_id}/pass", response_model=InteractionOut, dependencies=[RL_MATCH_DECISION])
def pass_match(
    target_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service),
) -> InteractionOut:
    return _decide(service, user_id, target_id, InteractionType.PASS)


@router.post("/matches/{target_id}/block", response_model=InteractionOut, dependencies=[RL_MATCH_DECISION])
def block_match(
    target_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service),
) -> InteractionOut:
    return _decide(service, user_id, target_id, InteractionType.BLOCK)


@router.delete("/matches/{target_id}/block", response_model=UnblockResponse, dependencies=[RL_MATCH_DECISION])
def unblock_match(
    target_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service),
) -> UnblockResponse:
    return UnblockResponse(removed=service.unblock(user_id, target_id))
