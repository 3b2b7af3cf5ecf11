from __future__ import annotations

from fastapi import Request

from reviewguard.services.decision_context import DecisionContextLoader
from reviewguard.services.reviewer_index import ReviewerIndexAllocator
from reviewguard.services.workflow_config_service import WorkflowConfigService

# 中文注释:
# - 序号分配器与策略缓存是进程级状态，由 lifespan 挂在 app.state 上，按引用注入到请求里；
# - 测试可直接替换 app.state 上的对象，或使用 dependency_overrides。


def get_context_loader(request: Request) -> DecisionContextLoader:
    return request.app.state.context_loader


def get_reviewer_index(request: Request) -> ReviewerIndexAllocator:
    return request.app.state.reviewer_index


def get_workflow_config_service(request: Request) -> WorkflowConfigService:
    return request.app.state.workflow_config
