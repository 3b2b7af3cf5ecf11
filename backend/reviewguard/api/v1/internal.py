from fastapi import APIRouter, Depends

from reviewguard.core.security import require_admin_key
from reviewguard.schemas.conversation import (
    InvalidateResponse,
    ReviewerIndexInvalidateRequest,
    WorkflowConfigInvalidateRequest,
)
from reviewguard.services.reviewer_index import ReviewerIndexAllocator
from reviewguard.services.workflow_config_service import WorkflowConfigService
from reviewguard.api.v1.visibility_common import get_reviewer_index, get_workflow_config_service

router = APIRouter(prefix="/internal", tags=["Internal"])


@router.post("/reviewer-index/invalidate", response_model=InvalidateResponse)
async def invalidate_reviewer_index(
    payload: ReviewerIndexInvalidateRequest,
    _admin: None = Depends(require_admin_key),
    allocator: ReviewerIndexAllocator = Depends(get_reviewer_index),
):
    """
    审稿任务变更后的失效钩子（内部接口）

    中文注释:
    - 审稿任务的创建 / 变更方必须在下一次读取前调用；
    - 已经展示过的化名不会被追溯修正。
    """
    manuscript_id = (payload.manuscript_id or "").strip() or None
    allocator.invalidate(manuscript_id)
    if manuscript_id:
        return InvalidateResponse(scope=manuscript_id, version=allocator.version(manuscript_id))
    return InvalidateResponse(scope="*")


@router.post("/workflow-config/invalidate", response_model=InvalidateResponse)
async def invalidate_workflow_config(
    payload: WorkflowConfigInvalidateRequest,
    _admin: None = Depends(require_admin_key),
    config_service: WorkflowConfigService = Depends(get_workflow_config_service),
):
    journal_id = (payload.journal_id or "").strip() or None
    config_service.invalidate(journal_id)
    return InvalidateResponse(scope=journal_id or "*")
