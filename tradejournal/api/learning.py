"""Learning events and pattern analysis API."""

from fastapi import APIRouter, Depends, Query

from tradejournal.api.deps import get_detector, get_learning_log
from tradejournal.schemas.learning import LearningEventRead, LearningEventsResponse, PatternAnalysis
from tradejournal.services.learning_log import LearningLog
from tradejournal.services.pattern_detector import PatternDetector

router = APIRouter(prefix="/api/learning", tags=["learning"])


@router.get("", response_model=LearningEventsResponse)
def list_learning_events(
    limit: int = Query(default=50, ge=1, le=500),
    log: LearningLog = Depends(get_learning_log),
):
    events = [LearningEventRead.model_validate(e) for e in log.list_recent(limit)]
    return LearningEventsResponse(events=events)


@router.get("/analysis", response_model=PatternAnalysis)
def pattern_analysis(detector: PatternDetector = Depends(get_detector)):
    return detector.pattern_analysis()
