from fastapi import APIRouter, Depends, Query
from app.core.dependencies import get_actor_id, get_activity_log
from app.modules.activity.schemas import ActivityEntryResponse, ActivityPageResponse, ContentActivityCreate
from app.modules.activity.service import ActivityLog
from typing import Optional

router = APIRouter(prefix="/groups/{group_id}/activity", tags=["activity"])


@router.get("", response_model=ActivityPageResponse)
async def list_activity(
    group_id: str,
    cursor: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    actor_id: str = Depends(get_actor_id),
    activity: ActivityLog = Depends(get_activity_log)
):
    """Newest-first activity feed; pass next_cursor back to load more"""
    return activity.list_for_group(group_id, actor_id, cursor=cursor, limit=limit)


@router.post("", response_model=ActivityEntryResponse, status_code=201)
async def record_activity(
    group_id: str,
    entry: ContentActivityCreate,
    actor_id: str = Depends(get_actor_id),
    activity: ActivityLog = Depends(get_activity_log)
):
    """Record a note/goal lifecycle event (any member)"""
    return activity.record_content_activity(group_id, actor_id, entry.action, entry.entity_id, entry.details)
