from reviewguard.models.context import Message, MessageAuthor, Viewer
from reviewguard.models.workflow import MessagePrivacy
from reviewguard.services.conversation_view_service import ConversationViewService

BLIND = {
    "author.seesReviews": "realtime",
    "author.seesReviewerIdentity": "never",
    "reviewers.seeEachOther": "never",
    "reviewers.seeAuthorIdentity": "never",
}


def _msg(mid, author_id, privacy, username=None):
    return Message(
        id=mid,
        conversation_id="c-1",
        author=MessageAuthor(id=author_id, username=username or author_id),
        privacy=privacy,
    )


def _thread():
    return [
        _msg("m-1", "reviewer-1", MessagePrivacy.AUTHOR_VISIBLE),
        _msg("m-2", "reviewer-2", MessagePrivacy.AUTHOR_VISIBLE),
        _msg("m-3", "reviewer-3", MessagePrivacy.AUTHOR_VISIBLE),
        _msg("m-4", "editor-1", MessagePrivacy.EDITOR_ONLY),
        _msg("m-5", "author-1", MessagePrivacy.AUTHOR_VISIBLE),
    ]


def test_author_sees_lettered_reviewers(make_ctx, make_config, make_allocator):
    ctx = make_ctx(
        config=make_config(**BLIND),
        reviewers=(("reviewer-1", "IN_PROGRESS"), ("reviewer-2", "IN_PROGRESS"), ("reviewer-3", "IN_PROGRESS")),
    )
    service = ConversationViewService(make_allocator(ctx))
    visible = service.visible_messages(ctx, Viewer(user_id="author-1"), _thread())

    assert [r.message.id for r in visible] == ["m-1", "m-2", "m-3", "m-4", "m-5"]
    assert [r.author.name for r in visible[:3]] == ["Reviewer A", "Reviewer B", "Reviewer C"]
    assert all(r.author.is_masked for r in visible[:3])
    assert not any(r.author.is_masked for r in visible[3:])


def test_invisible_messages_carry_no_author(make_ctx, make_config, make_allocator):
    ctx = make_ctx(config=make_config(**BLIND))
    service = ConversationViewService(make_allocator(ctx))
    rendered = service.render(ctx, Viewer(user_id="reviewer-1"), _thread())

    by_id = {r.message.id: r for r in rendered}
    assert by_id["m-2"].visible is False
    assert by_id["m-2"].author is None
    assert by_id["m-4"].visible is True
    # 作者身份对审稿人遮蔽
    assert by_id["m-5"].author.name == "Author"
    # 自己的消息不遮蔽
    assert by_id["m-1"].author.is_masked is False


def test_hidden_messages_do_not_allocate_ordinals(make_ctx, make_config, make_allocator):
    ctx = make_ctx(config=make_config(**{**BLIND, "author.seesReviews": "never"}))
    allocator = make_allocator(ctx)
    ConversationViewService(allocator).visible_messages(ctx, Viewer(user_id="author-1"), _thread())
    assert allocator.store.has(ctx.manuscript_id) is False


def test_editor_sees_everything_unmasked(make_ctx, make_config, make_allocator):
    ctx = make_ctx(config=make_config(**BLIND))
    service = ConversationViewService(make_allocator(ctx))
    visible = service.visible_messages(ctx, Viewer(user_id="editor-1"), _thread())
    assert len(visible) == 5
    assert not any(r.author.is_masked for r in visible)
