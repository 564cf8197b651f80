"""Integration tests for review store query functions.

Covers review creation with nested items and comments, lookups by id and
by (submission, scorecard, resource), filtered listing with totals, column
guards on updates, item mutations through the parent collection, cascade
deletes, scorecard question ownership and the append-only audit log.
"""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from review_engine.database.models.review import (
    ReviewItem,
    ReviewItemCommentType,
    ReviewStatus,
)
from review_engine.database.models.scorecard import ScorecardType
from review_engine.database.queries.audit import create_audit_entry, list_audit_entries
from review_engine.database.queries.review import (
    build_review_item,
    create_review,
    delete_review,
    find_review,
    get_review,
    list_reviews,
    update_review,
)
from review_engine.database.queries.review_item import (
    create_review_item,
    delete_review_item,
    get_review_item,
    update_review_item,
)
from review_engine.database.queries.scorecard import (
    create_scorecard,
    get_question_scorecard_id,
    get_scorecard,
    get_scorecards,
)
from review_engine.database.queries.submission import (
    create_submission,
    get_submission,
    list_member_submission_ids,
)


async def seed(session: AsyncSession) -> None:
    await create_scorecard(
        session,
        name="Review Scorecard",
        type=ScorecardType.REVIEW,
        scorecard_id="sc1",
        groups=[
            {
                "name": "Quality",
                "weight": 100.0,
                "sections": [
                    {
                        "name": "Code",
                        "weight": 100.0,
                        "questions": [
                            {"id": "q1", "type": "SCALE", "weight": 50.0, "scale_min": 1, "scale_max": 10},
                            {"id": "q2", "type": "YES_NO", "weight": 50.0},
                        ],
                    }
                ],
            }
        ],
    )
    await create_submission(session, challenge_id="c1", member_id="500", submission_id="s1")
    await create_submission(session, challenge_id="c1", member_id="600", submission_id="s2")
    await create_submission(session, challenge_id="c2", member_id="500", submission_id="s3")


@pytest.mark.asyncio
async def test_create_review_with_items_and_comments(db_session: AsyncSession) -> None:
    """Test creating a review persists its items and comment threads."""
    await seed(db_session)

    review = await create_review(
        db_session,
        submission_id="s1",
        scorecard_id="sc1",
        resource_id="r-100",
        phase_id="p-review",
        status=ReviewStatus.IN_PROGRESS,
        review_metadata={"source": "ui"},
        created_by="100",
        items=[
            build_review_item(
                "q1",
                initial_answer="8",
                comments=[
                    {"content": "Clean structure"},
                    {"content": "Add tests", "type": "REQUIRED"},
                ],
                resource_id="r-100",
                created_by="100",
            ),
        ],
    )

    assert review.id is not None
    assert review.created_at is not None
    assert review.committed is False
    assert review.updated_by == "100"

    db_session.expunge_all()
    loaded = await get_review(db_session, review.id)
    assert loaded is not None
    assert loaded.review_metadata == {"source": "ui"}
    assert loaded.submission.challenge_id == "c1"
    assert len(loaded.review_items) == 1

    item = loaded.review_items[0]
    assert item.initial_answer == "8"
    assert [c.content for c in item.comments] == ["Clean structure", "Add tests"]
    assert item.comments[1].type == ReviewItemCommentType.REQUIRED
    assert item.comments[1].sort_order == 1
    assert all(c.resource_id == "r-100" for c in item.comments)
    assert item.comments[0].appeal is None


@pytest.mark.asyncio
async def test_get_review_not_found(db_session: AsyncSession) -> None:
    assert await get_review(db_session, "missing") is None


@pytest.mark.asyncio
async def test_find_review_by_triple(db_session: AsyncSession) -> None:
    await seed(db_session)
    review = await create_review(
        db_session, submission_id="s1", scorecard_id="sc1", resource_id="r-100", phase_id="p-review"
    )

    found = await find_review(db_session, "s1", "sc1", "r-100")
    assert found is not None
    assert found.id == review.id
    assert await find_review(db_session, "s1", "sc1", "r-200") is None


@pytest.mark.asyncio
async def test_list_reviews_filters_and_total(db_session: AsyncSession) -> None:
    """Test listing by challenge, status and resource with paging totals."""
    await seed(db_session)
    await create_review(
        db_session, submission_id="s1", scorecard_id="sc1", resource_id="r-100", phase_id="p-review"
    )
    await create_review(
        db_session,
        submission_id="s2",
        scorecard_id="sc1",
        resource_id="r-100",
        phase_id="p-review",
        status=ReviewStatus.COMPLETED,
    )
    await create_review(
        db_session, submission_id="s1", scorecard_id="sc1", resource_id="r-200", phase_id="p-review"
    )
    await create_review(
        db_session, submission_id="s3", scorecard_id="sc1", resource_id="r-900", phase_id="p-other"
    )

    reviews, total = await list_reviews(db_session, challenge_id="c1")
    assert total == 3
    assert {r.submission_id for r in reviews} == {"s1", "s2"}

    reviews, total = await list_reviews(db_session, challenge_id="c1", status=ReviewStatus.COMPLETED)
    assert total == 1
    assert reviews[0].submission_id == "s2"

    reviews, total = await list_reviews(db_session, resource_id="r-100")
    assert total == 2

    page, total = await list_reviews(db_session, limit=2, offset=1)
    assert total == 4
    assert len(page) == 2


@pytest.mark.asyncio
async def test_update_review_columns(db_session: AsyncSession) -> None:
    await seed(db_session)
    review = await create_review(
        db_session, submission_id="s1", scorecard_id="sc1", resource_id="r-100", phase_id="p-review"
    )

    updated = await update_review(
        db_session,
        review,
        {"status": ReviewStatus.COMPLETED, "committed": True, "initial_score": 90.0, "updated_by": "300"},
    )

    assert updated.status == ReviewStatus.COMPLETED
    assert updated.committed is True
    assert updated.initial_score == 90.0
    assert updated.updated_by == "300"


@pytest.mark.asyncio
async def test_update_review_rejects_identity_columns(db_session: AsyncSession) -> None:
    await seed(db_session)
    review = await create_review(
        db_session, submission_id="s1", scorecard_id="sc1", resource_id="r-100", phase_id="p-review"
    )

    with pytest.raises(ValueError, match="resource_id"):
        await update_review(db_session, review, {"resource_id": "r-200"})
    assert review.resource_id == "r-100"


@pytest.mark.asyncio
async def test_review_item_lifecycle(db_session: AsyncSession) -> None:
    """Test items are added, changed and removed through the parent review."""
    await seed(db_session)
    review = await create_review(
        db_session, submission_id="s1", scorecard_id="sc1", resource_id="r-100", phase_id="p-review"
    )

    item = await create_review_item(db_session, review, build_review_item("q1", initial_answer="5"))
    assert item.review_id == review.id
    assert review.review_items == [item]

    loaded = await get_review_item(db_session, item.id)
    assert loaded is not None
    assert loaded.review.id == review.id

    await update_review_item(db_session, item, {"final_answer": "7", "manager_comment": "Raised"})
    assert item.final_answer == "7"
    assert item.manager_comment == "Raised"

    with pytest.raises(ValueError, match="review_id"):
        await update_review_item(db_session, item, {"review_id": "other"})

    await delete_review_item(db_session, review, item)
    assert review.review_items == []
    assert await get_review_item(db_session, item.id) is None


@pytest.mark.asyncio
async def test_delete_review_cascades_items(db_session: AsyncSession) -> None:
    await seed(db_session)
    review = await create_review(
        db_session,
        submission_id="s1",
        scorecard_id="sc1",
        resource_id="r-100",
        phase_id="p-review",
        items=[build_review_item("q1", initial_answer="5"), build_review_item("q2", initial_answer="yes")],
    )
    review_id = review.id

    await delete_review(db_session, review)

    assert await get_review(db_session, review_id) is None
    remaining = await db_session.execute(select(ReviewItem).where(ReviewItem.review_id == review_id))
    assert remaining.scalars().all() == []


@pytest.mark.asyncio
async def test_scorecard_tree_and_question_owner(db_session: AsyncSession) -> None:
    await seed(db_session)

    scorecard = await get_scorecard(db_session, "sc1")
    assert scorecard is not None
    assert scorecard.type == ScorecardType.REVIEW
    questions = [q.id for g in scorecard.groups for s in g.sections for q in s.questions]
    assert questions == ["q1", "q2"]

    assert await get_question_scorecard_id(db_session, "q2") == "sc1"
    assert await get_question_scorecard_id(db_session, "missing") is None
    assert set(await get_scorecards(db_session, ["sc1", "missing"])) == {"sc1"}
    assert await get_scorecards(db_session, []) == {}


@pytest.mark.asyncio
async def test_submission_lookups(db_session: AsyncSession) -> None:
    await seed(db_session)

    submission = await get_submission(db_session, "s1")
    assert submission is not None
    assert submission.member_id == "500"
    assert await list_member_submission_ids(db_session, "c1", "500") == {"s1"}
    assert await list_member_submission_ids(db_session, "c1", "999") == set()


@pytest.mark.asyncio
async def test_audit_entries_outlive_review(db_session: AsyncSession) -> None:
    """Test audit rows stay readable after their review is deleted."""
    await seed(db_session)
    review = await create_review(
        db_session, submission_id="s1", scorecard_id="sc1", resource_id="r-100", phase_id="p-review"
    )
    review_id = review.id

    await create_audit_entry(
        db_session,
        review_id=review_id,
        actor_id="100",
        description="status: null -> PENDING",
        submission_id="s1",
        challenge_id="c1",
    )
    await delete_review(db_session, review)
    await create_audit_entry(
        db_session,
        review_id=review_id,
        actor_id="300",
        description="status: PENDING -> null",
        submission_id="s1",
        challenge_id="c1",
    )

    entries = await list_audit_entries(db_session, review_id)
    assert [e.actor_id for e in entries] == ["100", "300"]
    assert entries[0].challenge_id == "c1"
    assert await list_audit_entries(db_session, "other") == []
