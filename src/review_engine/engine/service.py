"""Review lifecycle orchestration.

ReviewService sequences the engine components for every review operation:
resolve phase and resource on create, authorize, persist inside a single
unit of work, recompute scores, record the audit diff, and after commit
either publish a completion event or apply read visibility.

External lookups made while deciding authorization propagate their
failures; lookups made only to enrich a response (handles, ratings)
degrade to empty fields.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from review_engine.database.models.base import utcnow
from review_engine.database.models.review import Review, ReviewItem, ReviewStatus
from review_engine.database.models.scorecard import Scorecard
from review_engine.database.queries import audit as audit_queries
from review_engine.database.queries import review as review_queries
from review_engine.database.queries import review_item as review_item_queries
from review_engine.database.queries import scorecard as scorecard_queries
from review_engine.database.queries import submission as submission_queries
from review_engine.engine.audit import (
    ReviewSnapshot,
    diff_snapshots,
    format_changes,
    snapshot_review,
)
from review_engine.engine.events import (
    CompletionPublisher,
    ReviewCompletedPayload,
    is_completion_transition,
)
from review_engine.engine.policy import (
    REOPEN_STATUSES,
    AccessMode,
    Decision,
    Deny,
    ItemAction,
    check_immutable_fields,
    check_item_scope,
    decide_audit_access,
    decide_item_change,
    decide_reopen,
    decide_review_delete,
    decide_review_update,
    enforce,
)
from review_engine.engine.resolver import find_phase_by_id, resolve_review_target
from review_engine.engine.roles import Actor, Capability, capability_of
from review_engine.engine.schemas import (
    AuditEntryOut,
    ReviewCreate,
    ReviewItemCreate,
    ReviewItemInput,
    ReviewItemOut,
    ReviewItemUpdate,
    ReviewOut,
    ReviewPage,
    ReviewUpdate,
)
from review_engine.engine.scope import RequestScope
from review_engine.engine.scoring import compute_scores, question_index
from review_engine.engine.visibility import (
    Hidden,
    Masked,
    Visibility,
    Visible,
    decide_visibility,
    mask_review,
)
from review_engine.errors import (
    ConflictError,
    DownstreamError,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
)
from review_engine.integrations.challenge import ChallengeClient
from review_engine.integrations.members import MemberClient
from review_engine.integrations.resources import ResourceClient
from review_engine.integrations.snapshots import ResourceSnapshot
from review_engine.logging import get_logger

logger = get_logger(__name__)

REVIEW_COLUMN_CHANGES = frozenset({"status", "committed", "type_id", "review_date", "review_metadata"})
NON_NULLABLE_CHANGES = frozenset({"status", "committed", "review_items"})


@dataclass(frozen=True)
class Identities:
    """Reviewer and submitter identity attached to responses and events."""

    reviewer_member_id: str | None = None
    reviewer_handle: str | None = None
    reviewer_max_rating: int | None = None
    submitter_handle: str | None = None
    submitter_max_rating: int | None = None


class ReviewService:
    """Create, read, update and delete reviews and review items.

    Each public method is one operation by one actor. A fresh RequestScope
    memoizes challenge and resource lookups for the duration of the call.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        challenge_client: ChallengeClient,
        resource_client: ResourceClient,
        member_client: MemberClient | None = None,
        publisher: CompletionPublisher | None = None,
        submitter_role_id: str | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.challenge_client = challenge_client
        self.resource_client = resource_client
        self.member_client = member_client
        self.publisher = publisher
        self.submitter_role_id = submitter_role_id
        self.logger = logger.bind(component="review_service")

    def new_scope(self) -> RequestScope:
        """Create the memoization scope for one request."""
        return RequestScope(
            challenge_client=self.challenge_client,
            resource_client=self.resource_client,
            member_client=self.member_client,
        )

    @asynccontextmanager
    async def _unit_of_work(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Session with one transaction; store failures become engine errors."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except IntegrityError as e:
            self.logger.warning("store_conflict", operation=operation, error=str(e.orig))
            raise ConflictError(
                "STORE_CONFLICT",
                "The change conflicts with existing data",
                {"operation": operation},
            ) from e
        except SQLAlchemyError as e:
            self.logger.error("store_error", operation=operation, error=str(e))
            raise DownstreamError(
                "STORE_ERROR",
                "The review store failed",
                {"operation": operation},
            ) from e

    def _authorize(self, decision: Decision | None, event: str, **context: Any) -> AccessMode | None:
        if isinstance(decision, Deny):
            self.logger.info(event, code=decision.code, **context)
        return enforce(decision)

    # Loading and validation

    async def _load_review(self, session: AsyncSession, review_id: str) -> Review:
        review = await review_queries.get_review(session, review_id)
        if review is None:
            raise NotFoundError(
                "REVIEW_NOT_FOUND",
                f"Review {review_id} not found",
                {"reviewId": review_id},
            )
        return review

    async def _load_item(self, session: AsyncSession, item_id: str) -> ReviewItem:
        item = await review_item_queries.get_review_item(session, item_id)
        if item is None:
            raise NotFoundError(
                "RECORD_NOT_FOUND",
                f"Review item {item_id} not found",
                {"reviewItemId": item_id},
            )
        return item

    async def _load_scorecard(self, session: AsyncSession, scorecard_id: str) -> Scorecard:
        scorecard = await scorecard_queries.get_scorecard(session, scorecard_id)
        if scorecard is None:
            raise NotFoundError(
                "SCORECARD_NOT_FOUND",
                f"Scorecard {scorecard_id} not found",
                {"scorecardId": scorecard_id},
            )
        return scorecard

    async def _validate_question(
        self, session: AsyncSession, scorecard: Scorecard, question_id: str
    ) -> None:
        """A question must exist and belong to the review's own scorecard."""
        if question_id in question_index(scorecard):
            return
        owner_id = await scorecard_queries.get_question_scorecard_id(session, question_id)
        if owner_id is None:
            raise NotFoundError(
                "SCORECARD_QUESTION_NOT_FOUND",
                f"Scorecard question {question_id} not found",
                {"scorecardQuestionId": question_id},
            )
        raise InvalidRequestError(
            "SCORECARD_QUESTION_MISMATCH",
            "The question belongs to a different scorecard",
            {
                "scorecardQuestionId": question_id,
                "scorecardId": scorecard.id,
                "questionScorecardId": owner_id,
            },
        )

    async def _validate_items(
        self, session: AsyncSession, scorecard: Scorecard, items: Iterable[ReviewItemInput]
    ) -> None:
        seen: set[str] = set()
        for item in items:
            if item.scorecard_question_id in seen:
                raise InvalidRequestError(
                    "REVIEW_ITEM_DUPLICATE_QUESTION",
                    "Each scorecard question may be answered once per review",
                    {"scorecardQuestionId": item.scorecard_question_id},
                )
            seen.add(item.scorecard_question_id)
            await self._validate_question(session, scorecard, item.scorecard_question_id)

    async def _actor_resources(
        self, scope: RequestScope, actor: Actor, challenge_id: str
    ) -> list[ResourceSnapshot]:
        if actor.is_privileged:
            return []
        return await scope.get_member_resources(challenge_id, actor.user_id)

    # Scores and audit

    def _resolve_scores(
        self,
        actor: Actor,
        supplied: dict[str, Any],
        scorecard: Scorecard,
        items: list[ReviewItem],
        recompute: bool,
    ) -> dict[str, Any]:
        """Derived scores, overridden by explicitly supplied ones for admins."""
        derived = compute_scores(scorecard, items) if recompute else None
        scores: dict[str, Any] = {}
        for name in ("initial_score", "final_score"):
            if name in supplied and actor.is_privileged:
                scores[name] = supplied[name]
            elif derived is not None:
                scores[name] = getattr(derived, name)
            elif name in supplied:
                self.logger.debug("supplied_score_ignored", field=name)
        return scores

    async def _refresh_scores(
        self, session: AsyncSession, actor: Actor, review: Review, scorecard: Scorecard
    ) -> None:
        scores = compute_scores(scorecard, review.review_items)
        await review_queries.update_review(
            session,
            review,
            {
                "initial_score": scores.initial_score,
                "final_score": scores.final_score,
                "updated_by": actor.audit_id,
            },
        )

    async def _record_audit(
        self,
        session: AsyncSession,
        actor: Actor,
        review_id: str,
        submission_id: str | None,
        challenge_id: str | None,
        before: ReviewSnapshot | None,
        after: ReviewSnapshot | None,
        always_include: Iterable[tuple[str, str]] = (),
    ) -> None:
        changes = diff_snapshots(before, after, always_include)
        if not changes:
            return
        await audit_queries.create_audit_entry(
            session,
            review_id=review_id,
            actor_id=actor.audit_id,
            description=format_changes(changes),
            submission_id=submission_id,
            challenge_id=challenge_id,
        )

    # Identity, presentation and events

    async def _identities(
        self,
        scope: RequestScope,
        challenge_id: str,
        reviewer_resource_id: str,
        submitter_member_id: str | None,
    ) -> Identities:
        """Resolve handles and ratings, degrading to empty on failure."""
        try:
            resources = await scope.get_resources(challenge_id)
            reviewer = next((r for r in resources if r.id == reviewer_resource_id), None)
            submitter = self._submitter_resource(resources, submitter_member_id)
            reviewer_member_id = reviewer.member_id if reviewer else None
            profiles = await scope.get_profiles(
                [m for m in (reviewer_member_id, submitter_member_id) if m]
            )
        except DownstreamError as e:
            self.logger.warning(
                "review_identity_unavailable",
                challenge_id=challenge_id,
                code=e.code,
            )
            return Identities()

        reviewer_profile = profiles.get(reviewer_member_id) if reviewer_member_id else None
        submitter_profile = profiles.get(submitter_member_id) if submitter_member_id else None
        return Identities(
            reviewer_member_id=reviewer_member_id,
            reviewer_handle=(
                (reviewer.member_handle if reviewer else None)
                or (reviewer_profile.handle if reviewer_profile else None)
            ),
            reviewer_max_rating=reviewer_profile.max_rating if reviewer_profile else None,
            submitter_handle=(
                (submitter.member_handle if submitter else None)
                or (submitter_profile.handle if submitter_profile else None)
            ),
            submitter_max_rating=submitter_profile.max_rating if submitter_profile else None,
        )

    def _submitter_resource(
        self, resources: list[ResourceSnapshot], member_id: str | None
    ) -> ResourceSnapshot | None:
        if not member_id:
            return None
        for resource in resources:
            if resource.member_id != member_id:
                continue
            if self.submitter_role_id and resource.role_id == self.submitter_role_id:
                return resource
            if capability_of(resource) == Capability.SUBMITTER:
                return resource
        return None

    async def _present(self, scope: RequestScope, review: Review) -> ReviewOut:
        """Build the response for a review: phase name, appeals, identity."""
        challenge_id = review.submission.challenge_id
        out = ReviewOut.model_validate(review)
        appeals = [
            comment.appeal
            for item in out.review_items
            for comment in item.review_item_comments
            if comment.appeal is not None
        ]

        phase_name = None
        try:
            challenge = await scope.get_challenge(challenge_id)
            phase = find_phase_by_id(challenge, review.phase_id)
            phase_name = phase.name if phase else None
        except (DownstreamError, NotFoundError) as e:
            self.logger.warning("review_phase_name_unavailable", review_id=review.id, code=e.code)

        identities = await self._identities(
            scope, challenge_id, review.resource_id, review.submission.member_id
        )
        return out.model_copy(
            update={
                "phase_name": phase_name,
                "appeals": appeals,
                "reviewer_handle": identities.reviewer_handle,
                "reviewer_max_rating": identities.reviewer_max_rating,
                "submitter_handle": identities.submitter_handle,
                "submitter_max_rating": identities.submitter_max_rating,
            }
        )

    async def _publish_completion(self, scope: RequestScope, review: Review) -> None:
        if self.publisher is None:
            return
        challenge_id = review.submission.challenge_id
        submitter_member_id = review.submission.member_id
        identities = await self._identities(
            scope, challenge_id, review.resource_id, submitter_member_id
        )
        payload = ReviewCompletedPayload.from_review(
            review,
            challenge_id=challenge_id,
            reviewer_handle=identities.reviewer_handle,
            reviewer_member_id=identities.reviewer_member_id,
            submitter_handle=identities.submitter_handle,
            submitter_member_id=submitter_member_id,
        )
        await self.publisher.publish(payload)

    async def _visibility(
        self, scope: RequestScope, actor: Actor, review: Review
    ) -> Visibility:
        challenge_id = review.submission.challenge_id
        challenge = await scope.get_challenge(challenge_id)
        viewer_resources = await self._actor_resources(scope, actor, challenge_id)
        return decide_visibility(
            actor,
            viewer_resources,
            challenge,
            review.resource_id,
            review.phase_id,
            review.submission.member_id,
        )

    # Reviews

    async def create_review(self, actor: Actor, payload: ReviewCreate) -> ReviewOut:
        """Create a review for a submission.

        Resolves the phase and authoring resource, validates every item
        against the scorecard, derives scores from the items, records the
        creation audit entry and, when created as COMPLETED, publishes the
        completion event.

        Raises:
            NotFoundError: Unknown scorecard, submission, resource or question.
            InvalidRequestError: Phase not found or invalid items.
            ForbiddenError: The requester may not author the review.
            ConflictError: A review already exists for the same
                submission, scorecard and resource.
        """
        scope = self.new_scope()
        async with self._unit_of_work("create_review") as session:
            scorecard = await self._load_scorecard(session, payload.scorecard_id)
            submission = await submission_queries.get_submission(session, payload.submission_id)
            if submission is None:
                raise NotFoundError(
                    "SUBMISSION_NOT_FOUND",
                    f"Submission {payload.submission_id} not found",
                    {"submissionId": payload.submission_id},
                )

            target = await resolve_review_target(
                scope,
                actor,
                submission.challenge_id,
                scorecard.type,
                resource_id=payload.resource_id,
                phase_id=payload.phase_id,
            )
            await self._validate_items(session, scorecard, payload.review_items)

            if actor.is_privileged:
                mode = AccessMode.ADMIN
            elif capability_of(target.resource) == Capability.COPILOT:
                mode = AccessMode.COPILOT
            else:
                mode = AccessMode.OWNER
            for item_input in payload.review_items:
                changes = {} if item_input.manager_comment is None else {"manager_comment": item_input.manager_comment}
                self._authorize(
                    check_item_scope(mode, ItemAction.CREATE, changes, item_input.manager_comment),
                    "review_create_denied",
                    submission_id=submission.id,
                )

            existing = await review_queries.find_review(
                session, submission.id, scorecard.id, target.resource.id
            )
            if existing is not None:
                raise ConflictError(
                    "REVIEW_ALREADY_EXISTS",
                    "A review already exists for this submission, scorecard and resource",
                    {"reviewId": existing.id},
                )

            items = [
                review_queries.build_review_item(
                    scorecard_question_id=item_input.scorecard_question_id,
                    initial_answer=item_input.initial_answer,
                    final_answer=item_input.final_answer,
                    manager_comment=item_input.manager_comment,
                    comments=[c.model_dump() for c in item_input.review_item_comments],
                    resource_id=target.resource.id,
                    created_by=actor.audit_id,
                )
                for item_input in payload.review_items
            ]
            supplied = {
                name: getattr(payload, name)
                for name in ("initial_score", "final_score")
                if name in payload.model_fields_set
            }
            scores = self._resolve_scores(actor, supplied, scorecard, items, recompute=bool(items))
            review_date = payload.review_date
            if payload.status == ReviewStatus.COMPLETED and review_date is None:
                review_date = utcnow()

            review = await review_queries.create_review(
                session,
                submission_id=submission.id,
                scorecard_id=scorecard.id,
                resource_id=target.resource.id,
                phase_id=target.phase.id,
                status=payload.status,
                committed=payload.committed,
                type_id=payload.type_id,
                initial_score=scores.get("initial_score"),
                final_score=scores.get("final_score"),
                review_date=review_date,
                review_metadata=payload.metadata,
                created_by=actor.audit_id,
                items=items,
            )
            review.submission = submission
            await self._record_audit(
                session,
                actor,
                review.id,
                submission.id,
                submission.challenge_id,
                None,
                snapshot_review(review),
            )

        if is_completion_transition(None, review.status):
            await self._publish_completion(scope, review)
        return await self._present(scope, review)

    async def get_review(self, actor: Actor, review_id: str) -> ReviewOut:
        """Read one review.

        Raises:
            NotFoundError: Unknown review.
            ForbiddenError: The review is masked or hidden from the requester.
        """
        scope = self.new_scope()
        async with self._unit_of_work("get_review") as session:
            review = await self._load_review(session, review_id)

        visibility = await self._visibility(scope, actor, review)
        if not isinstance(visibility, Visible):
            self.logger.info("review_access_denied", review_id=review_id, code=visibility.code)
            raise ForbiddenError(visibility.code, visibility.message, {"reviewId": review_id})
        return await self._present(scope, review)

    async def list_reviews(
        self,
        actor: Actor,
        challenge_id: str | None = None,
        submission_id: str | None = None,
        scorecard_id: str | None = None,
        resource_id: str | None = None,
        status: ReviewStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> ReviewPage:
        """List reviews, masking or dropping rows the requester may not see.

        ``total`` counts every stored review matching the filters.
        """
        scope = self.new_scope()
        async with self._unit_of_work("list_reviews") as session:
            reviews, total = await review_queries.list_reviews(
                session,
                challenge_id=challenge_id,
                submission_id=submission_id,
                scorecard_id=scorecard_id,
                resource_id=resource_id,
                status=status,
                limit=limit,
                offset=offset,
            )

        data: list[ReviewOut] = []
        for review in reviews:
            visibility = await self._visibility(scope, actor, review)
            if isinstance(visibility, Hidden):
                continue
            out = await self._present(scope, review)
            if isinstance(visibility, Masked):
                out = mask_review(out)
            data.append(out)

        self.logger.debug(
            "reviews_listed",
            returned=len(data),
            fetched=len(reviews),
            total=total,
        )
        return ReviewPage(data=data, total=total, limit=limit, offset=offset)

    async def update_review(
        self, actor: Actor, review_id: str, payload: ReviewUpdate
    ) -> ReviewOut:
        """Apply a partial update to a review.

        Identity fields are rejected before the store is touched. Items, when
        supplied, replace the review's items keyed by question. Reopening a
        completed review clears its commitment, scores and review date.

        Raises:
            InvalidRequestError: Immutable fields present or invalid items.
            NotFoundError: Unknown review or question.
            ForbiddenError: The actor may not change the review.
        """
        changes = payload.requested_changes()
        self._authorize(
            check_immutable_fields(changes),
            "review_update_denied",
            review_id=review_id,
        )
        for name in NON_NULLABLE_CHANGES:
            if name in changes and changes[name] is None:
                del changes[name]

        scope = self.new_scope()
        async with self._unit_of_work("update_review") as session:
            review = await self._load_review(session, review_id)
            challenge_id = review.submission.challenge_id
            challenge = await scope.get_challenge(challenge_id)
            actor_resources = await self._actor_resources(scope, actor, challenge_id)

            mode = self._authorize(
                decide_review_update(actor, review.resource_id, challenge, actor_resources, changes),
                "review_update_denied",
                review_id=review_id,
            )
            self._authorize(
                decide_reopen(review.status, changes, find_phase_by_id(challenge, review.phase_id)),
                "review_update_denied",
                review_id=review_id,
            )

            scorecard = await self._load_scorecard(session, review.scorecard_id)
            before = snapshot_review(review)
            previous_status = review.status

            item_inputs = changes.get("review_items")
            if item_inputs is not None:
                await self._validate_items(session, scorecard, item_inputs)
                await self._replace_items(session, actor, mode, review, item_inputs)

            column_changes = {k: v for k, v in changes.items() if k in REVIEW_COLUMN_CHANGES}
            reopening = (
                previous_status == ReviewStatus.COMPLETED
                and column_changes.get("status") in REOPEN_STATUSES
            )
            if reopening:
                column_changes.update(
                    committed=False,
                    initial_score=None,
                    final_score=None,
                    review_date=None,
                )
            else:
                column_changes.update(
                    self._resolve_scores(
                        actor,
                        {k: v for k, v in changes.items() if k in ("initial_score", "final_score")},
                        scorecard,
                        review.review_items,
                        recompute=item_inputs is not None or bool(review.review_items),
                    )
                )
                if (
                    column_changes.get("status") == ReviewStatus.COMPLETED
                    and review.review_date is None
                    and column_changes.get("review_date") is None
                ):
                    column_changes["review_date"] = utcnow()
            column_changes["updated_by"] = actor.audit_id

            await review_queries.update_review(session, review, column_changes)
            await self._record_audit(
                session,
                actor,
                review.id,
                review.submission_id,
                challenge_id,
                before,
                snapshot_review(review),
            )

        if is_completion_transition(previous_status, review.status):
            await self._publish_completion(scope, review)
        return await self._present(scope, review)

    async def _replace_items(
        self,
        session: AsyncSession,
        actor: Actor,
        mode: AccessMode | None,
        review: Review,
        item_inputs: list[ReviewItemInput],
    ) -> None:
        """Make the review's items match ``item_inputs`` keyed by question.

        An omitted manager comment keeps the stored one.
        """
        wanted = {item_input.scorecard_question_id for item_input in item_inputs}
        for item in list(review.review_items):
            if item.scorecard_question_id not in wanted:
                await review_item_queries.delete_review_item(session, review, item)

        existing = {item.scorecard_question_id: item for item in review.review_items}
        for item_input in item_inputs:
            current = existing.get(item_input.scorecard_question_id)
            if current is None:
                changes = {} if item_input.manager_comment is None else {"manager_comment": item_input.manager_comment}
                self._authorize(
                    check_item_scope(mode, ItemAction.CREATE, changes, item_input.manager_comment),
                    "review_update_denied",
                    review_id=review.id,
                )
                await review_item_queries.create_review_item(
                    session,
                    review,
                    review_queries.build_review_item(
                        scorecard_question_id=item_input.scorecard_question_id,
                        initial_answer=item_input.initial_answer,
                        final_answer=item_input.final_answer,
                        manager_comment=item_input.manager_comment,
                        comments=[c.model_dump() for c in item_input.review_item_comments],
                        resource_id=review.resource_id,
                        created_by=actor.audit_id,
                    ),
                )
                continue

            item_changes: dict[str, Any] = {}
            for name in ("initial_answer", "final_answer"):
                value = getattr(item_input, name)
                if value != getattr(current, name):
                    item_changes[name] = value
            if (
                item_input.manager_comment is not None
                and item_input.manager_comment != current.manager_comment
            ):
                item_changes["manager_comment"] = item_input.manager_comment
            if not item_changes:
                continue

            self._authorize(
                check_item_scope(
                    mode,
                    ItemAction.UPDATE,
                    item_changes,
                    item_changes.get("manager_comment", current.manager_comment),
                ),
                "review_update_denied",
                review_id=review.id,
            )
            item_changes["updated_by"] = actor.audit_id
            await review_item_queries.update_review_item(session, current, item_changes)

    async def delete_review(self, actor: Actor, review_id: str) -> None:
        """Delete a review with its items; the audit history is kept.

        Raises:
            NotFoundError: Unknown review.
            ForbiddenError: The actor is neither admin nor copilot.
        """
        scope = self.new_scope()
        async with self._unit_of_work("delete_review") as session:
            review = await self._load_review(session, review_id)
            challenge_id = review.submission.challenge_id
            actor_resources = await self._actor_resources(scope, actor, challenge_id)
            self._authorize(
                decide_review_delete(actor, actor_resources),
                "review_delete_denied",
                review_id=review_id,
            )

            before = snapshot_review(review)
            submission_id = review.submission_id
            await review_queries.delete_review(session, review)
            await self._record_audit(
                session,
                actor,
                review_id,
                submission_id,
                challenge_id,
                before,
                None,
            )

    async def get_review_audit(self, actor: Actor, review_id: str) -> list[AuditEntryOut]:
        """Audit history of a review, including reviews since deleted.

        Raises:
            NotFoundError: No review and no history under the id.
            ForbiddenError: The actor is neither admin nor copilot.
        """
        scope = self.new_scope()
        async with self._unit_of_work("get_review_audit") as session:
            review = await review_queries.get_review(session, review_id)
            entries = await audit_queries.list_audit_entries(session, review_id)

        if review is None and not entries:
            raise NotFoundError(
                "REVIEW_NOT_FOUND",
                f"Review {review_id} not found",
                {"reviewId": review_id},
            )
        challenge_id = (
            review.submission.challenge_id
            if review is not None
            else next((e.challenge_id for e in entries if e.challenge_id), None)
        )
        actor_resources = (
            await self._actor_resources(scope, actor, challenge_id) if challenge_id else []
        )
        self._authorize(
            decide_audit_access(actor, actor_resources),
            "review_audit_denied",
            review_id=review_id,
        )
        return [AuditEntryOut.model_validate(entry) for entry in entries]

    # Review items

    async def create_review_item(
        self, actor: Actor, payload: ReviewItemCreate
    ) -> ReviewItemOut:
        """Add an answer to an existing review and recompute its scores."""
        scope = self.new_scope()
        async with self._unit_of_work("create_review_item") as session:
            review = await self._load_review(session, payload.review_id)
            challenge_id = review.submission.challenge_id
            scorecard = await self._load_scorecard(session, review.scorecard_id)
            await self._validate_question(session, scorecard, payload.scorecard_question_id)

            actor_resources = await self._actor_resources(scope, actor, challenge_id)
            mode = self._authorize(
                decide_item_change(actor, ItemAction.CREATE, review.resource_id, actor_resources),
                "review_item_create_denied",
                review_id=review.id,
            )
            changes = {} if payload.manager_comment is None else {"manager_comment": payload.manager_comment}
            self._authorize(
                check_item_scope(mode, ItemAction.CREATE, changes, payload.manager_comment),
                "review_item_create_denied",
                review_id=review.id,
            )
            if any(
                item.scorecard_question_id == payload.scorecard_question_id
                for item in review.review_items
            ):
                raise ConflictError(
                    "REVIEW_ITEM_ALREADY_EXISTS",
                    "The review already answers this question",
                    {"reviewId": review.id, "scorecardQuestionId": payload.scorecard_question_id},
                )

            before = snapshot_review(review)
            item = await review_item_queries.create_review_item(
                session,
                review,
                review_queries.build_review_item(
                    scorecard_question_id=payload.scorecard_question_id,
                    initial_answer=payload.initial_answer,
                    final_answer=payload.final_answer,
                    manager_comment=payload.manager_comment,
                    comments=[c.model_dump() for c in payload.review_item_comments],
                    resource_id=review.resource_id,
                    created_by=actor.audit_id,
                ),
            )
            await self._refresh_scores(session, actor, review, scorecard)
            await self._record_audit(
                session,
                actor,
                review.id,
                review.submission_id,
                challenge_id,
                before,
                snapshot_review(review),
            )
        return ReviewItemOut.model_validate(item)

    async def update_review_item(
        self, actor: Actor, item_id: str, payload: ReviewItemUpdate
    ) -> ReviewItemOut:
        """Change a review item's answers or manager comment.

        Raises:
            NotFoundError: Unknown item or question.
            InvalidRequestError: Review or scorecard mismatch.
            ForbiddenError: The actor may not change the item or field.
        """
        requested = payload.requested_changes()
        if requested.get("scorecard_question_id") is None:
            requested.pop("scorecard_question_id", None)

        scope = self.new_scope()
        async with self._unit_of_work("update_review_item") as session:
            item = await self._load_item(session, item_id)
            review = item.review
            if payload.review_id is not None and payload.review_id != review.id:
                raise InvalidRequestError(
                    "REVIEW_ITEM_REVIEW_MISMATCH",
                    "The item does not belong to the given review",
                    {"reviewItemId": item_id, "reviewId": payload.review_id},
                )
            challenge_id = review.submission.challenge_id
            scorecard = await self._load_scorecard(session, review.scorecard_id)
            if "scorecard_question_id" in requested:
                await self._validate_question(session, scorecard, requested["scorecard_question_id"])

            actor_resources = await self._actor_resources(scope, actor, challenge_id)
            mode = self._authorize(
                decide_item_change(actor, ItemAction.UPDATE, review.resource_id, actor_resources),
                "review_item_update_denied",
                review_item_id=item_id,
            )

            changes = {k: v for k, v in requested.items() if getattr(item, k) != v}
            self._authorize(
                check_item_scope(
                    mode,
                    ItemAction.UPDATE,
                    changes,
                    changes.get("manager_comment", item.manager_comment),
                ),
                "review_item_update_denied",
                review_item_id=item_id,
            )
            new_question_id = changes.get("scorecard_question_id")
            if new_question_id is not None and any(
                other.scorecard_question_id == new_question_id
                for other in review.review_items
                if other.id != item.id
            ):
                raise ConflictError(
                    "REVIEW_ITEM_ALREADY_EXISTS",
                    "The review already answers this question",
                    {"reviewId": review.id, "scorecardQuestionId": new_question_id},
                )

            before = snapshot_review(review)
            if changes:
                changes["updated_by"] = actor.audit_id
                await review_item_queries.update_review_item(session, item, changes)
                await self._refresh_scores(session, actor, review, scorecard)

            forced: list[tuple[str, str]] = []
            if mode == AccessMode.COPILOT and "manager_comment" in requested:
                forced.append((item.scorecard_question_id, "managerComment"))
            await self._record_audit(
                session,
                actor,
                review.id,
                review.submission_id,
                challenge_id,
                before,
                snapshot_review(review),
                always_include=forced,
            )
        return ReviewItemOut.model_validate(item)

    async def delete_review_item(
        self, actor: Actor, item_id: str, review_id: str | None = None
    ) -> None:
        """Remove an answer from a review and recompute its scores."""
        scope = self.new_scope()
        async with self._unit_of_work("delete_review_item") as session:
            item = await self._load_item(session, item_id)
            review = item.review
            if review_id is not None and review_id != review.id:
                raise InvalidRequestError(
                    "REVIEW_ITEM_REVIEW_MISMATCH",
                    "The item does not belong to the given review",
                    {"reviewItemId": item_id, "reviewId": review_id},
                )
            challenge_id = review.submission.challenge_id
            actor_resources = await self._actor_resources(scope, actor, challenge_id)
            self._authorize(
                decide_item_change(actor, ItemAction.DELETE, review.resource_id, actor_resources),
                "review_item_delete_denied",
                review_item_id=item_id,
            )

            scorecard = await self._load_scorecard(session, review.scorecard_id)
            before = snapshot_review(review)
            await review_item_queries.delete_review_item(session, review, item)
            await self._refresh_scores(session, actor, review, scorecard)
            await self._record_audit(
                session,
                actor,
                review.id,
                review.submission_id,
                challenge_id,
                before,
                snapshot_review(review),
            )
