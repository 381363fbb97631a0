"""Correlation context codec tests."""

import pytest

from issueflow.correlation import (
    CorrelationContext,
    MissingContextField,
    UnexpectedState,
    WorkflowState,
    context_from_mapping,
    decode_context,
    encode_context,
    expect_state,
    from_message_metadata,
    new_context,
    require,
    to_message_metadata,
)


def test_context_round_trip_preserves_types():
    ctx = new_context(
        WorkflowState.SUBMITTED,
        repo="org/repo",
        title="It's broken",
        addToProject=True,
        assignedToCopilot=False,
        issue_number=42,
        score=0.5,
    )

    restored = decode_context(encode_context(ctx))

    assert restored == ctx
    assert restored.get("addToProject") is True
    assert restored.get("issue_number") == 42
    assert restored.get("score") == 0.5


def test_decode_keeps_unknown_keys():
    ctx = decode_context(b'{"state": "created", "issue_url": "u", "future_key": [1, 2]}')
    assert ctx.state is WorkflowState.CREATED
    assert ctx.get("future_key") == [1, 2]


def test_decode_tolerates_missing_optional_keys():
    ctx = decode_context('{"state": "submitted", "repo": "org/repo"}')
    assert ctx.get_str("title") == ""
    assert ctx.get_bool("addToProject") is False


def test_decode_infers_state_for_untagged_contexts():
    assert decode_context('{"repo": "o/r"}').state is WorkflowState.SUBMITTED
    assert decode_context('{"issue_url": "u"}').state is WorkflowState.CREATED


def test_decode_rejects_unknown_state_and_non_objects():
    with pytest.raises(ValueError):
        decode_context('{"state": "exploded"}')
    with pytest.raises(ValueError):
        decode_context("[1, 2]")


def test_require_reports_every_missing_key():
    ctx = new_context(WorkflowState.SUBMITTED, repo="org/repo", title="")
    with pytest.raises(MissingContextField) as exc:
        require(ctx, "repo", "title", "username")
    assert exc.value.missing == ["title", "username"]
    assert exc.value.state is WorkflowState.SUBMITTED


def test_advance_appends_without_mutating():
    ctx = new_context(WorkflowState.SUBMITTED, repo="org/repo")
    created = ctx.advance(WorkflowState.CREATED, issue_url="u", repo="org/repo")

    assert created.state is WorkflowState.CREATED
    assert created.get("issue_url") == "u"
    assert ctx.state is WorkflowState.SUBMITTED
    assert ctx.get("issue_url") is None


def test_advance_refuses_to_overwrite():
    ctx = new_context(WorkflowState.SUBMITTED, repo="org/repo")
    with pytest.raises(ValueError):
        ctx.advance(WorkflowState.CREATED, repo="other/repo")


def test_message_metadata_round_trip():
    ctx = new_context(WorkflowState.CREATED, issue_url="https://github.com/o/r/issues/1")
    metadata = to_message_metadata(ctx).model_dump()

    assert metadata["event_type"] == "issue_created"
    assert metadata["event_payload"]["state"] == "created"
    assert from_message_metadata(metadata) == ctx


@pytest.mark.parametrize(
    "metadata",
    [
        None,
        {},
        {"event_type": "something_else", "event_payload": {"issue_url": "u"}},
        {"event_type": "issue_created", "event_payload": "not a dict"},
        {"event_type": "issue_created", "event_payload": {"state": "bogus"}},
    ],
)
def test_from_message_metadata_without_context(metadata):
    assert from_message_metadata(metadata) is None


def test_context_from_mapping_none():
    ctx = context_from_mapping(None)
    assert isinstance(ctx, CorrelationContext)
    assert ctx.fields == {}


def test_expect_state():
    expect_state(WorkflowState.CREATED, WorkflowState.CREATED, WorkflowState.IDLE)
    with pytest.raises(UnexpectedState) as exc:
        expect_state(WorkflowState.CLOSED, WorkflowState.CREATED, WorkflowState.IDLE)
    assert exc.value.state is WorkflowState.CLOSED
    assert "closed" in str(exc.value)
    with pytest.raises(UnexpectedState):
        expect_state(None, WorkflowState.CREATED)
