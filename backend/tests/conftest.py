import os
import sys
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from reviewguard.main import app
from reviewguard.models.context import DecisionContext, ManuscriptContext, ReviewAssignment
from reviewguard.models.workflow import (
    GlobalRole,
    WorkflowConfig,
    normalize_phase,
    normalize_review_status,
)
from reviewguard.services.reviewer_index import ReviewerIndexAllocator

# === 全局测试配置 ===
# 中文注释:
# 1. 策略函数全部是纯函数，单元测试直接构造 DecisionContext，不需要数据库。
# 2. HTTP 测试通过 dependency_overrides 注入假的数据加载层。

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def client() -> AsyncGenerator:
    """
    提供一个模拟的异步测试客户端
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


def build_config(**overrides) -> WorkflowConfig:
    """
    以“全开放”策略为基线，按 dotted key 覆盖单个开关，例如
    build_config(**{"author.seesReviews": "never"})。
    """
    raw = {
        "author": {"seesReviews": "realtime", "seesReviewerIdentity": "always", "canParticipate": "anytime"},
        "reviewers": {"seeEachOther": "realtime", "seeAuthorIdentity": "always", "seeAuthorResponses": "realtime"},
        "phases": {"enabled": False, "authorResponseStartsNewCycle": False, "requireAllReviewsBeforeRelease": False},
    }
    for dotted, value in overrides.items():
        section, knob = dotted.split(".", 1)
        raw[section][knob] = value
    return WorkflowConfig.model_validate(raw)


def build_ctx(
    *,
    phase="UNDER_REVIEW",
    config=None,
    authors=("author-1",),
    reviewers=(("reviewer-1", "IN_PROGRESS"), ("reviewer-2", "IN_PROGRESS")),
    global_roles=None,
    invitation=False,
    manuscript_id="ms-0001",
    workflow_round=1,
) -> DecisionContext:
    assignments = tuple(
        ReviewAssignment(
            reviewer_id=rid,
            status=normalize_review_status(status),
            assigned_at=T0 + timedelta(hours=i),
        )
        for i, (rid, status) in enumerate(reviewers)
    )
    return DecisionContext(
        manuscript=ManuscriptContext(
            id=manuscript_id,
            workflow_phase=normalize_phase(phase),
            workflow_round=workflow_round,
            journal_id="journal-1",
        ),
        author_ids=frozenset(authors),
        assignments=assignments,
        global_roles=global_roles or {"editor-1": GlobalRole.EDITOR_IN_CHIEF, "bot-1": GlobalRole.BOT},
        config=config,
        has_author_invitation=invitation,
    )


def allocator_for(ctx: DecisionContext) -> ReviewerIndexAllocator:
    return ReviewerIndexAllocator(lambda _mid: list(ctx.assignments))


@pytest.fixture
def make_config():
    return build_config


@pytest.fixture
def make_ctx():
    return build_ctx


@pytest.fixture
def make_allocator():
    return allocator_for
