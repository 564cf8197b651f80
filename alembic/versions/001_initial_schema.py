"""Initial schema for Review Engine.

Creates the scorecard tree (scorecards, groups, sections, questions),
submissions, reviews with items, comments, appeals and appeal responses,
and the review audit log. Audit rows carry no foreign key to reviews so
history survives review deletion.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SCORECARD_TYPES = (
    "REVIEW",
    "ITERATIVE_REVIEW",
    "SCREENING",
    "CHECKPOINT_SCREENING",
    "CHECKPOINT_REVIEW",
    "APPROVAL",
    "POST_MORTEM",
    "SPECIFICATION_REVIEW",
)
QUESTION_TYPES = ("SCALE", "YES_NO", "TEST_CASE")
REVIEW_STATUSES = (
    "PENDING",
    "IN_PROGRESS",
    "COMPLETED",
    "DRAFT",
    "SUBMITTED",
    "APPROVED",
    "REJECTED",
)
COMMENT_TYPES = (
    "COMMENT",
    "REQUIRED",
    "RECOMMENDED",
    "AGGREGATION_COMMENT",
    "SUBMITTER_COMMENT",
    "MANAGER_COMMENT",
    "SPECIFICATION_REVIEW_COMMENT",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _authors() -> list[sa.Column]:
    return [
        sa.Column("created_by", sa.Text(), nullable=True),
        sa.Column("updated_by", sa.Text(), nullable=True),
    ]


def upgrade() -> None:
    # Scorecard tree
    op.create_table(
        "scorecards",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("type", sa.Enum(*SCORECARD_TYPES, name="scorecardtype"), nullable=False),
        sa.Column("min_score", sa.Float(), nullable=False),
        sa.Column("max_score", sa.Float(), nullable=False),
        sa.Column("minimum_passing_score", sa.Float(), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "scorecard_groups",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "scorecard_id",
            sa.String(36),
            sa.ForeignKey("scorecards.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_scorecard_groups_scorecard_id", "scorecard_groups", ["scorecard_id"])
    op.create_table(
        "scorecard_sections",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "group_id",
            sa.String(36),
            sa.ForeignKey("scorecard_groups.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_scorecard_sections_group_id", "scorecard_sections", ["group_id"])
    op.create_table(
        "scorecard_questions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "section_id",
            sa.String(36),
            sa.ForeignKey("scorecard_sections.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("type", sa.Enum(*QUESTION_TYPES, name="questiontype"), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False),
        sa.Column("scale_min", sa.Integer(), nullable=True),
        sa.Column("scale_max", sa.Integer(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_scorecard_questions_section_id", "scorecard_questions", ["section_id"])

    # Submissions
    op.create_table(
        "submissions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("challenge_id", sa.Text(), nullable=False),
        sa.Column("member_id", sa.Text(), nullable=False),
        sa.Column("submitted_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_submissions_challenge_id", "submissions", ["challenge_id"])
    op.create_index("ix_submissions_member_id", "submissions", ["member_id"])

    # Reviews and their children
    op.create_table(
        "reviews",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("resource_id", sa.Text(), nullable=False),
        sa.Column("phase_id", sa.Text(), nullable=False),
        sa.Column(
            "submission_id",
            sa.String(36),
            sa.ForeignKey("submissions.id"),
            nullable=False,
        ),
        sa.Column(
            "scorecard_id",
            sa.String(36),
            sa.ForeignKey("scorecards.id"),
            nullable=False,
        ),
        sa.Column("type_id", sa.Text(), nullable=True),
        sa.Column("status", sa.Enum(*REVIEW_STATUSES, name="reviewstatus"), nullable=False),
        sa.Column("committed", sa.Boolean(), nullable=False),
        sa.Column("initial_score", sa.Float(), nullable=True),
        sa.Column("final_score", sa.Float(), nullable=True),
        sa.Column("review_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        *_authors(),
        *_timestamps(),
        sa.UniqueConstraint(
            "submission_id",
            "scorecard_id",
            "resource_id",
            name="uq_reviews_submission_scorecard_resource",
        ),
    )
    op.create_index("ix_reviews_resource_id", "reviews", ["resource_id"])
    op.create_index("ix_reviews_submission_id", "reviews", ["submission_id"])

    op.create_table(
        "review_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "review_id",
            sa.String(36),
            sa.ForeignKey("reviews.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "scorecard_question_id",
            sa.String(36),
            sa.ForeignKey("scorecard_questions.id"),
            nullable=False,
        ),
        sa.Column("initial_answer", sa.Text(), nullable=True),
        sa.Column("final_answer", sa.Text(), nullable=True),
        sa.Column("manager_comment", sa.Text(), nullable=True),
        *_authors(),
        *_timestamps(),
        sa.UniqueConstraint(
            "review_id",
            "scorecard_question_id",
            name="uq_review_items_review_question",
        ),
    )
    op.create_index("ix_review_items_review_id", "review_items", ["review_id"])

    op.create_table(
        "review_item_comments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "review_item_id",
            sa.String(36),
            sa.ForeignKey("review_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("resource_id", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("type", sa.Enum(*COMMENT_TYPES, name="reviewitemcommenttype"), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        *_authors(),
        *_timestamps(),
    )
    op.create_index(
        "ix_review_item_comments_review_item_id", "review_item_comments", ["review_item_id"]
    )

    op.create_table(
        "appeals",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "review_item_comment_id",
            sa.String(36),
            sa.ForeignKey("review_item_comments.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("resource_id", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        *_authors(),
        *_timestamps(),
    )
    op.create_table(
        "appeal_responses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "appeal_id",
            sa.String(36),
            sa.ForeignKey("appeals.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("resource_id", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False),
        *_authors(),
        *_timestamps(),
    )

    # Audit log
    op.create_table(
        "review_audits",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("review_id", sa.String(36), nullable=False),
        sa.Column("submission_id", sa.String(36), nullable=True),
        sa.Column("challenge_id", sa.Text(), nullable=True),
        sa.Column("actor_id", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_review_audits_review_id", "review_audits", ["review_id"])
    op.create_index("ix_review_audits_submission_id", "review_audits", ["submission_id"])


def downgrade() -> None:
    op.drop_table("review_audits")
    op.drop_table("appeal_responses")
    op.drop_table("appeals")
    op.drop_table("review_item_comments")
    op.drop_table("review_items")
    op.drop_table("reviews")
    op.drop_table("submissions")
    op.drop_table("scorecard_questions")
    op.drop_table("scorecard_sections")
    op.drop_table("scorecard_groups")
    op.drop_table("scorecards")

    # Drop enum types
    sa.Enum(name="reviewitemcommenttype").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="reviewstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="questiontype").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="scorecardtype").drop(op.get_bind(), checkfirst=True)
