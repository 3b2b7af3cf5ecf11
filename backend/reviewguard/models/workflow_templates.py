from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from reviewguard.models.workflow import WorkflowConfig

# 最严格的预设：存储中的策略无法解析时以此兜底（宁可不披露）
STRICTEST_TEMPLATE_ID = "traditional-blind"


@dataclass(frozen=True)
class WorkflowTemplate:
    id: str
    name: str
    description: str
    config: WorkflowConfig


def _config(*, author: dict, reviewers: dict, phases: dict) -> WorkflowConfig:
    return WorkflowConfig.model_validate({"author": author, "reviewers": reviewers, "phases": phases})


WORKFLOW_TEMPLATES: tuple[WorkflowTemplate, ...] = (
    WorkflowTemplate(
        id="traditional-blind",
        name="Traditional Double-Blind",
        description=(
            "Authors and reviewers cannot see each other's identities. "
            "Reviews are released to authors only after the editorial decision."
        ),
        config=_config(
            author={"seesReviews": "on_release", "seesReviewerIdentity": "never", "canParticipate": "on_release"},
            reviewers={"seeEachOther": "never", "seeAuthorIdentity": "never", "seeAuthorResponses": "on_release"},
            phases={"enabled": True, "authorResponseStartsNewCycle": True, "requireAllReviewsBeforeRelease": True},
        ),
    ),
    WorkflowTemplate(
        id="single-blind",
        name="Single-Blind Review",
        description=(
            "Reviewers know author identities, but authors do not know reviewer identities. "
            "Reviews are released after the editorial decision."
        ),
        config=_config(
            author={"seesReviews": "on_release", "seesReviewerIdentity": "never", "canParticipate": "on_release"},
            reviewers={"seeEachOther": "never", "seeAuthorIdentity": "always", "seeAuthorResponses": "on_release"},
            phases={"enabled": True, "authorResponseStartsNewCycle": True, "requireAllReviewsBeforeRelease": True},
        ),
    ),
    WorkflowTemplate(
        id="open-continuous",
        name="Open Continuous Review",
        description="All identities are visible and authors can see and respond to reviews in real time.",
        config=_config(
            author={"seesReviews": "realtime", "seesReviewerIdentity": "always", "canParticipate": "anytime"},
            reviewers={"seeEachOther": "realtime", "seeAuthorIdentity": "always", "seeAuthorResponses": "realtime"},
            phases={"enabled": False, "authorResponseStartsNewCycle": False, "requireAllReviewsBeforeRelease": False},
        ),
    ),
    WorkflowTemplate(
        id="progressive-disclosure",
        name="Progressive Disclosure",
        description=(
            "Reviewers work independently until all reviews are submitted, then see each other "
            "for deliberation. Authors see everything upon release."
        ),
        config=_config(
            author={"seesReviews": "on_release", "seesReviewerIdentity": "on_release", "canParticipate": "on_release"},
            reviewers={"seeEachOther": "after_all_submit", "seeAuthorIdentity": "never", "seeAuthorResponses": "on_release"},
            phases={"enabled": True, "authorResponseStartsNewCycle": True, "requireAllReviewsBeforeRelease": True},
        ),
    ),
    WorkflowTemplate(
        id="open-gated",
        name="Open with Gated Participation",
        description=(
            "Authors see reviews in real time but can only respond when explicitly invited by the editors."
        ),
        config=_config(
            author={"seesReviews": "realtime", "seesReviewerIdentity": "always", "canParticipate": "invited"},
            reviewers={"seeEachOther": "realtime", "seeAuthorIdentity": "always", "seeAuthorResponses": "realtime"},
            phases={"enabled": True, "authorResponseStartsNewCycle": False, "requireAllReviewsBeforeRelease": False},
        ),
    ),
)


def get_workflow_template(template_id: str | None) -> Optional[WorkflowTemplate]:
    tid = str(template_id or "").strip().lower()
    for template in WORKFLOW_TEMPLATES:
        if template.id == tid:
            return template
    return None


def get_workflow_template_config(template_id: str | None) -> Optional[WorkflowConfig]:
    template = get_workflow_template(template_id)
    return template.config if template else None
