"""Data service facade: the single entry point for all business operations.

The facade is written once against the Store contract, so the memory and SQL
backends share the same rules, error taxonomy and leaderboard ordering. Each
public operation runs in a single unit of work; the spreadsheet mirror is
notified only after that unit has committed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from ptracker.auth.gate import AdminGate, Identity, require_admin
from ptracker.clock import ensure_utc, utcnow
from ptracker.errors import ForbiddenError, NotFoundError, SeasonInactiveError, ValidationError
from ptracker.gamification.levels import compute_level
from ptracker.gamification.ranking import rank_leaderboard
from ptracker.gamification.rules import (
    BASE_SUBMISSION_POINTS,
    BONUS_REASON,
    SUBMISSION_REASON,
    fallback_name,
    is_usable_name,
    new_id,
    validate_bonus,
    validate_positive_amount,
    validate_submission,
)
from ptracker.gamification.schemas import (
    LeaderboardEntry,
    LedgerEntry,
    LedgerSource,
    ProblemRecord,
    ProblemStatus,
    UserProfile,
)
from ptracker.mirror.sheets import ADD_BONUS_POINTS, ADD_SURVEY, SYNC_ALL_DATA, UPDATE_USER, SheetsMirror
from ptracker.season import state_machine
from ptracker.season.report import build_season_report
from ptracker.season.schemas import SeasonReport, SeasonState
from ptracker.storage.base import Store, StoreSession

logger = structlog.get_logger()

EXPORT_VERSION = "1.0"


def _problem_payload(problem: ProblemRecord) -> dict[str, Any]:
    """Row shape expected by the spreadsheet's addSurvey action."""
    return {
        "problemId": problem.id,
        "timestamp": problem.created_at.isoformat(),
        "title": problem.title,
        "category": problem.category.value,
        "description": problem.description,
        "imageBase64": problem.images[0] if problem.images else "",
        "imagesCount": len(problem.images),
        "authorId": problem.author_id,
        "authorName": problem.author_name,
        "points": problem.points,
        "reviewed": problem.reviewed,
        "status": problem.status.value,
    }


def _user_payload(user: UserProfile) -> dict[str, Any]:
    return user.model_dump(mode="json")


def _profile_changed(before: UserProfile, after: UserProfile) -> bool:
    return before.model_dump(exclude={"last_active"}) != after.model_dump(exclude={"last_active"})


class DataService:
    """Single API over whichever Store the deployment is configured with."""

    def __init__(
        self,
        store: Store,
        gate: AdminGate,
        mirror: SheetsMirror | None = None,
        season_length_days: int = 30,
        leaderboard_top_n: int = 10,
    ) -> None:
        self.store = store
        self.gate = gate
        self.mirror = mirror
        self.season_length_days = season_length_days
        self.leaderboard_top_n = leaderboard_top_n

    @property
    def backend_name(self) -> str:
        return self.store.name

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def upsert_user(self, identity: Identity) -> UserProfile:
        """Create or refresh the user record on an authenticated interaction.

        Looked up by the identity's user id, falling back to its email. A
        stored name is only replaced by a usable one (see rules.is_usable_name).
        The mirror only hears about new users and changed profiles, not
        about ``last_active`` refreshes.
        """
        now = utcnow()
        async with self.store.session() as s:
            user = await self._find_identity_user(s, identity)
            before = user
            if user is None:
                name = identity.full_name if is_usable_name(identity.full_name) else fallback_name(identity.email)
                user = UserProfile(
                    id=identity.user_id,
                    email=identity.email,
                    full_name=name,
                    is_admin=identity.is_admin,
                    joined_at=now,
                    last_active=now,
                )
                logger.info("user_created", user_id=user.id, is_admin=user.is_admin)
            else:
                updates: dict[str, Any] = {"last_active": now, "is_admin": identity.is_admin}
                if identity.email:
                    updates["email"] = identity.email
                if is_usable_name(identity.full_name):
                    updates["full_name"] = identity.full_name
                elif not is_usable_name(user.full_name):
                    updates["full_name"] = fallback_name(identity.email or user.email)
                user = user.model_copy(update=updates)
            await s.put_user(user)

        if before is None or _profile_changed(before, user):
            await self._mirror(UPDATE_USER, _user_payload(user))
        return user

    async def get_user(self, user_id: str) -> UserProfile:
        async with self.store.session() as s:
            return await self._require_user(s, user_id)

    async def list_users(self) -> list[UserProfile]:
        async with self.store.session() as s:
            return await s.list_users()

    async def get_display_name(self, user_id: str, email: str) -> str:
        """Stored name if usable, otherwise the local part of the email."""
        async with self.store.session() as s:
            user = await s.get_user(user_id)
            if user is None and email:
                user = await s.find_user_by_email(email)
        if user is not None and is_usable_name(user.full_name):
            return user.full_name
        return fallback_name(email)

    async def delete_user(self, actor: Identity, user_id: str) -> None:
        """Delete a user together with their problems and ledger entries."""
        require_admin(actor, "delete users")
        if user_id == actor.user_id:
            raise ValidationError("You cannot delete your own account")

        async with self.store.session() as s:
            await self._require_user(s, user_id)
            await s.delete_problems(author_id=user_id)
            await s.delete_ledger(user_id=user_id)
            await s.delete_user(user_id)

        logger.info("user_deleted", user_id=user_id, admin_id=actor.user_id)

    # ------------------------------------------------------------------
    # Points ledger
    # ------------------------------------------------------------------

    async def grant_points(
        self,
        actor: Identity,
        user_id: str,
        amount: int,
        reason: str,
        problem_id: str | None = None,
    ) -> LedgerEntry:
        """Direct admin award. Not range-limited like bonuses."""
        require_admin(actor, "grant points")
        if user_id == actor.user_id:
            raise ValidationError("You cannot grant points to your own account")
        validate_positive_amount(amount)
        if not reason or not reason.strip():
            raise ValidationError("A reason is required for point grants")

        now = utcnow()
        async with self.store.session() as s:
            user = await self._require_user(s, user_id)
            if problem_id is not None and await s.get_problem(problem_id) is None:
                msg = f"Problem {problem_id} not found"
                raise NotFoundError(msg)
            season = await self._load_season(s, now)
            user, entry = await self._grant(
                s, user, amount, reason.strip(), LedgerSource.ADMIN_AWARD,
                season_id=season.current_season, now=now,
                problem_id=problem_id, admin_id=actor.user_id,
            )

        logger.info("points_granted", user_id=user_id, amount=amount, admin_id=actor.user_id)
        await self._mirror(UPDATE_USER, _user_payload(user))
        return entry

    async def recompute_user(self, actor: Identity, user_id: str) -> UserProfile:
        """Rebuild a user's aggregate from the ledger. Idempotent."""
        require_admin(actor, "recompute user totals")
        async with self.store.session() as s:
            user = await self._require_user(s, user_id)
            total = await s.sum_ledger(user_id)
            problems = await s.count_problems(author_id=user_id)
            repaired = user.model_copy(update={
                "total_points": total,
                "total_problems": problems,
                "level": compute_level(total),
            })
            if repaired != user:
                logger.warning(
                    "user_aggregate_repaired",
                    user_id=user_id,
                    stored_points=user.total_points,
                    ledger_points=total,
                )
                await s.put_user(repaired)
        return repaired

    async def points_history(self, user_id: str) -> list[LedgerEntry]:
        async with self.store.session() as s:
            await self._require_user(s, user_id)
            return await s.list_ledger(user_id=user_id)

    # ------------------------------------------------------------------
    # Problems & moderation
    # ------------------------------------------------------------------

    async def submit_problem(
        self,
        identity: Identity,
        title: str,
        description: str,
        category: str,
        images: list[str] | None = None,
    ) -> ProblemRecord:
        """Create a problem and its base point in one unit of work."""
        if identity.is_admin:
            raise ForbiddenError("The administrator cannot submit problems")
        images = list(images or [])

        now = utcnow()
        async with self.store.session() as s:
            season = await self._load_season(s, now)
            if not season.accepts_submissions:
                raise SeasonInactiveError
            parsed_category = validate_submission(title, description, category, images)
            author = await self._find_identity_user(s, identity)
            if author is None:
                msg = f"User {identity.user_id} not found"
                raise NotFoundError(msg)

            problem = ProblemRecord(
                id=new_id("problem"),
                title=title.strip(),
                description=description.strip(),
                category=parsed_category,
                images=images,
                author_id=author.id,
                author_name=author.full_name,
                points=BASE_SUBMISSION_POINTS,
                created_at=now,
                season_id=season.current_season,
            )
            await s.put_problem(problem)

            author = author.model_copy(update={"total_problems": author.total_problems + 1})
            await self._grant(
                s, author, BASE_SUBMISSION_POINTS, SUBMISSION_REASON, LedgerSource.SUBMISSION,
                season_id=season.current_season, now=now, problem_id=problem.id,
            )

        logger.info("problem_submitted", problem_id=problem.id, author_id=problem.author_id)
        await self._mirror(ADD_SURVEY, _problem_payload(problem))
        return problem

    async def list_problems(self) -> list[ProblemRecord]:
        """All problems, newest first."""
        async with self.store.session() as s:
            return await s.list_problems()

    async def list_user_problems(self, user_id: str) -> list[ProblemRecord]:
        async with self.store.session() as s:
            return await s.list_problems(author_id=user_id)

    async def get_problem(self, problem_id: str) -> ProblemRecord:
        async with self.store.session() as s:
            return await self._require_problem(s, problem_id)

    async def add_bonus_points(
        self,
        actor: Identity,
        problem_id: str,
        bonus_points: int,
        reason: str | None = None,
    ) -> ProblemRecord:
        """Add 1..10 bonus points to a problem and credit its author."""
        require_admin(actor, "add bonus points")
        validate_bonus(bonus_points)

        now = utcnow()
        async with self.store.session() as s:
            problem = await self._require_problem(s, problem_id)
            if problem.author_id == actor.user_id:
                raise ValidationError("Bonus points cannot be granted to your own problem")
            author = await self._require_user(s, problem.author_id)
            season = await self._load_season(s, now)

            problem = problem.model_copy(update={"points": problem.points + bonus_points})
            await s.put_problem(problem)
            author, _ = await self._grant(
                s, author, bonus_points, (reason or "").strip() or BONUS_REASON, LedgerSource.ADMIN_BONUS,
                season_id=season.current_season, now=now,
                problem_id=problem.id, admin_id=actor.user_id,
            )

        logger.info("bonus_granted", problem_id=problem_id, bonus=bonus_points, admin_id=actor.user_id)
        await self._mirror(ADD_BONUS_POINTS, {
            "problemId": problem.id,
            "authorId": author.id,
            "bonusPoints": bonus_points,
            "problemPoints": problem.points,
            "totalPoints": author.total_points,
            "level": author.level.value,
        })
        return problem

    async def toggle_reviewed(self, actor: Identity, problem_id: str) -> ProblemRecord:
        """Flip the reviewed marker; a second call restores the original state."""
        return await self._set_reviewed(actor, problem_id, None)

    async def mark_reviewed(self, actor: Identity, problem_id: str) -> ProblemRecord:
        return await self._set_reviewed(actor, problem_id, True)

    async def unmark_reviewed(self, actor: Identity, problem_id: str) -> ProblemRecord:
        return await self._set_reviewed(actor, problem_id, False)

    async def update_problem_status(
        self,
        actor: Identity,
        problem_id: str,
        status: ProblemStatus | str,
        admin_notes: str | None = None,
    ) -> ProblemRecord:
        require_admin(actor, "change problem status")
        try:
            parsed = ProblemStatus(status)
        except ValueError as e:
            msg = f"Unknown problem status {status!r}"
            raise ValidationError(msg) from e

        async with self.store.session() as s:
            problem = await self._require_problem(s, problem_id)
            updates: dict[str, Any] = {"status": parsed}
            if admin_notes is not None:
                updates["admin_notes"] = admin_notes.strip() or None
            problem = problem.model_copy(update=updates)
            await s.put_problem(problem)
        return problem

    async def _set_reviewed(self, actor: Identity, problem_id: str, target: bool | None) -> ProblemRecord:
        require_admin(actor, "mark problems as reviewed")
        now = utcnow()
        async with self.store.session() as s:
            problem = await self._require_problem(s, problem_id)
            reviewed = (not problem.reviewed) if target is None else target
            if reviewed == problem.reviewed:
                return problem
            problem = problem.model_copy(update={
                "reviewed": reviewed,
                "reviewed_at": now if reviewed else None,
                "reviewed_by": actor.user_id if reviewed else None,
            })
            await s.put_problem(problem)

        logger.info("problem_review_changed", problem_id=problem_id, reviewed=reviewed, admin_id=actor.user_id)
        return problem

    # ------------------------------------------------------------------
    # Leaderboard
    # ------------------------------------------------------------------

    async def get_leaderboard(self) -> list[LeaderboardEntry]:
        """Non-admin users with points, by points desc then earliest join."""
        async with self.store.session() as s:
            candidates = await s.leaderboard_candidates()
        return rank_leaderboard(candidates)

    # ------------------------------------------------------------------
    # Season controller
    # ------------------------------------------------------------------

    async def get_season_settings(self) -> SeasonState:
        async with self.store.session() as s:
            return await self._load_season(s, utcnow())

    async def configure_season(
        self,
        actor: Identity,
        name: str,
        start_date: datetime,
        end_date: datetime,
        is_active: bool = True,
    ) -> SeasonState:
        require_admin(actor, "configure the season")
        start, end = ensure_utc(start_date), ensure_utc(end_date)
        async with self.store.session() as s:
            current = await self._load_season(s, utcnow())
            state = state_machine.configure(current, name, start, end, is_active)
            await s.put_settings(state)

        logger.info("season_configured", season=state.current_season, admin_id=actor.user_id)
        return state

    async def activate_season(self, actor: Identity) -> SeasonState:
        require_admin(actor, "activate the season")
        async with self.store.session() as s:
            current = await self._load_season(s, utcnow())
            state = state_machine.activate(current)
            if state != current:
                await s.put_settings(state)
        logger.info("season_activated", season=state.current_season)
        return state

    async def deactivate_season(self, actor: Identity) -> SeasonState:
        require_admin(actor, "deactivate the season")
        async with self.store.session() as s:
            current = await self._load_season(s, utcnow())
            state = state_machine.deactivate(current)
            if state != current:
                await s.put_settings(state)
        logger.info("season_deactivated", season=state.current_season)
        return state

    async def finish_season(self, actor: Identity) -> SeasonReport:
        """Close the season and return its final standings.

        Data is kept, so the report stays queryable. Finishing an already
        finished season just returns the report again.
        """
        require_admin(actor, "finish the season")
        now = utcnow()
        async with self.store.session() as s:
            current = await self._load_season(s, now)
            state = state_machine.finish(current, now)
            if state != current:
                await s.put_settings(state)
            report = await self._build_report(s, state)

        logger.info(
            "season_finished",
            season=report.season_name,
            participants=report.total_participants,
            problems=report.total_problems,
        )
        return report

    async def reset_season(self, actor: Identity) -> SeasonState:
        """Wipe problems and ledger, zero every user and start a new season."""
        require_admin(actor, "reset the season")
        now = utcnow()
        async with self.store.session() as s:
            current = await self._load_season(s, now)
            await s.delete_problems()
            await s.delete_ledger()
            await s.reset_user_stats()
            state = state_machine.reset(current, now, self.season_length_days)
            await s.put_settings(state)

        logger.info("season_reset", previous=current.current_season, season=state.current_season)
        return state

    async def get_season_report(self) -> SeasonReport | None:
        """Report for a closed or expired season, None while one is running."""
        now = utcnow()
        async with self.store.session() as s:
            state = await self._load_season(s, now)
            if state.accepts_submissions and now <= state.season_end_date:
                return None
            return await self._build_report(s, state)

    # ------------------------------------------------------------------
    # Backup and mirror
    # ------------------------------------------------------------------

    async def export_data(self, actor: Identity) -> dict[str, Any]:
        """Full backup of every collection as JSON-ready data."""
        require_admin(actor, "export data")
        async with self.store.session() as s:
            users = await s.list_users()
            problems = await s.list_problems()
            ledger = await s.list_ledger()
            settings = await self._load_season(s, utcnow())
        return {
            "users": [u.model_dump(mode="json") for u in users],
            "problems": [p.model_dump(mode="json") for p in problems],
            "pointsHistory": [e.model_dump(mode="json") for e in ledger],
            "settings": settings.model_dump(mode="json"),
            "exportedAt": utcnow().isoformat(),
            "version": EXPORT_VERSION,
        }

    async def import_data(self, actor: Identity, payload: dict[str, Any]) -> None:
        """Replace everything with a backup produced by export_data."""
        require_admin(actor, "import data")
        if not isinstance(payload, dict) or "users" not in payload or "problems" not in payload:
            raise ValidationError("Invalid backup format: users and problems are required")
        try:
            users = [UserProfile.model_validate(u) for u in payload["users"]]
            problems = [ProblemRecord.model_validate(p) for p in payload["problems"]]
            ledger = [LedgerEntry.model_validate(e) for e in payload.get("pointsHistory", [])]
            settings = SeasonState.model_validate(payload["settings"]) if payload.get("settings") else None
        except (PydanticValidationError, TypeError) as e:
            msg = f"Invalid backup format: {e}"
            raise ValidationError(msg) from e

        async with self.store.session() as s:
            await s.delete_ledger()
            await s.delete_problems()
            await s.delete_all_users()
            for user in users:
                await s.put_user(user)
            for problem in problems:
                await s.put_problem(problem)
            for entry in ledger:
                await s.append_ledger(entry)
            if settings is not None:
                await s.put_settings(settings)

        logger.info("data_imported", users=len(users), problems=len(problems), admin_id=actor.user_id)

    async def sync_mirror(self, actor: Identity) -> bool:
        """Push a full copy of users and problems to the spreadsheet."""
        require_admin(actor, "sync the spreadsheet")
        if self.mirror is None:
            return False
        async with self.store.session() as s:
            users = await s.list_users()
            problems = await s.list_problems()
        return await self.mirror.push(SYNC_ALL_DATA, {
            "users": [_user_payload(u) for u in users],
            "problems": [_problem_payload(p) for p in problems],
        })

    async def replay_mirror(self, actor: Identity) -> int:
        require_admin(actor, "replay the spreadsheet queue")
        if self.mirror is None:
            return 0
        return await self.mirror.replay()

    async def mirror_pending(self) -> int:
        if self.mirror is None:
            return 0
        return await self.mirror.pending()

    # ------------------------------------------------------------------
    # Helpers (run inside an open unit of work)
    # ------------------------------------------------------------------

    async def _grant(
        self,
        s: StoreSession,
        user: UserProfile,
        amount: int,
        reason: str,
        source: LedgerSource,
        season_id: str,
        now: datetime,
        problem_id: str | None = None,
        admin_id: str | None = None,
    ) -> tuple[UserProfile, LedgerEntry]:
        """Append a ledger entry and bring the user aggregate in line with it."""
        validate_positive_amount(amount)
        entry = LedgerEntry(
            id=new_id("ledger"),
            user_id=user.id,
            problem_id=problem_id,
            points=amount,
            reason=reason,
            source=source,
            admin_id=admin_id,
            created_at=now,
            season_id=season_id,
        )
        await s.append_ledger(entry)

        total = user.total_points + amount
        user = user.model_copy(update={
            "total_points": total,
            "level": compute_level(total),
            "last_active": now,
        })
        await s.put_user(user)
        return user, entry

    async def _load_season(self, s: StoreSession, now: datetime) -> SeasonState:
        state = await s.get_settings()
        if state is None:
            state = state_machine.default_season(now, self.season_length_days)
            await s.put_settings(state)
        return state

    async def _build_report(self, s: StoreSession, state: SeasonState) -> SeasonReport:
        users = await s.list_users()
        total_problems = await s.count_problems()
        return build_season_report(state, users, total_problems, self.leaderboard_top_n)

    async def _find_identity_user(self, s: StoreSession, identity: Identity) -> UserProfile | None:
        user = await s.get_user(identity.user_id)
        if user is None and identity.email:
            user = await s.find_user_by_email(identity.email)
        return user

    async def _require_user(self, s: StoreSession, user_id: str) -> UserProfile:
        user = await s.get_user(user_id)
        if user is None:
            msg = f"User {user_id} not found"
            raise NotFoundError(msg)
        return user

    async def _require_problem(self, s: StoreSession, problem_id: str) -> ProblemRecord:
        problem = await s.get_problem(problem_id)
        if problem is None:
            msg = f"Problem {problem_id} not found"
            raise NotFoundError(msg)
        return problem

    async def _mirror(self, action: str, data: dict[str, Any]) -> None:
        if self.mirror is not None:
            await self.mirror.push(action, data)
