import logging

from fastapi import APIRouter, Depends, Query

from ..deps import get_batch_generator, require_admin_token
from ..schemas import BatchRunResponse, CleanupResponse, MatchStatisticsResponse
from ..services.batch import BatchGenerator

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin_token)])


@router.post("/admin/matches/run-batch", response_model=BatchRunResponse)
def run_match_batch(generator: BatchGenerator = Depends(get_batch_generator)) -> BatchRunResponse:
    logger.info("[batch] run triggered via admin endpoint")
    return BatchRunResponse(**generator.run().to_dict())


@router.post("/admin/matches/cleanup", response_model=CleanupResponse)
def cleanup_match_interactions(generator: BatchGenerator = Depends(get_batch_generator)) -> CleanupResponse:
    return CleanupResponse(deleted=generator.cleanup_old_interactions())


@router.get("/admin/matches/stats", response_model=MatchStatisticsResponse)
def match_statistics(
    days: int = Query(default=30, ge=1, le=365),
    generator: BatchGenerator = Depends(get_batch_generator),
) -> MatchStatisticsResponse:
    stats = generator.match_statistics(days=days)
    return MatchStatisticsResponse(days=days, **stats.to_dict())
