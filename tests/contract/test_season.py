"""Season controller: runs against every storage backend."""

from __future__ import annotations

from datetime import timedelta

import pytest

from ptracker.errors import ForbiddenError, SeasonInactiveError, ValidationError
from ptracker.season.schemas import SeasonPhase

pytestmark = pytest.mark.asyncio


async def _seed(service, *identities):
    for identity in identities:
        await service.upsert_user(identity)


class TestSeasonSettings:
    async def test_defaults_created_on_first_access(self, service, clock):
        state = await service.get_season_settings()
        assert state.current_season == "season-2026"
        assert state.phase == SeasonPhase.ACTIVE
        assert state.season_end_date - state.season_start_date == timedelta(days=30)
        assert await service.get_season_settings() == state

    async def test_configure(self, service, admin, clock):
        start = clock.now + timedelta(days=1)
        state = await service.configure_season(admin, "Весна 2026", start, start + timedelta(days=14), is_active=False)
        assert state.current_season == "Весна 2026"
        assert state.phase == SeasonPhase.INACTIVE
        assert await service.get_season_settings() == state

    async def test_configure_rejects_bad_window(self, service, admin, clock):
        with pytest.raises(ValidationError):
            await service.configure_season(admin, "Весна", clock.now, clock.now - timedelta(days=1))

    async def test_every_transition_is_admin_only(self, service, alice, clock):
        with pytest.raises(ForbiddenError):
            await service.activate_season(alice)
        with pytest.raises(ForbiddenError):
            await service.deactivate_season(alice)
        with pytest.raises(ForbiddenError):
            await service.finish_season(alice)
        with pytest.raises(ForbiddenError):
            await service.reset_season(alice)
        with pytest.raises(ForbiddenError):
            await service.configure_season(alice, "x", clock.now, clock.now + timedelta(days=1))


class TestActivation:
    async def test_deactivate_then_activate(self, service, admin):
        assert (await service.deactivate_season(admin)).phase == SeasonPhase.INACTIVE
        assert (await service.deactivate_season(admin)).phase == SeasonPhase.INACTIVE
        assert (await service.activate_season(admin)).phase == SeasonPhase.ACTIVE

    async def test_finished_season_cannot_be_activated(self, service, admin):
        await service.finish_season(admin)
        with pytest.raises(ValidationError):
            await service.activate_season(admin)
        assert (await service.deactivate_season(admin)).phase == SeasonPhase.FINISHED


class TestFinish:
    async def test_finish_returns_report(self, service, admin, alice, bob):
        await _seed(service, admin, alice, bob)
        await service.submit_problem(alice, "Течь", "Кран", "maintenance")
        await service.submit_problem(bob, "Провод", "Оголён", "safety")
        await service.submit_problem(bob, "Пыль", "Фильтр", "quality")

        report = await service.finish_season(admin)

        assert report.is_finished
        assert not report.is_active
        assert report.total_participants == 2
        assert report.total_problems == 3
        assert report.total_points == 3
        assert [(w.rank, w.user_id, w.points) for w in report.winners] == [(1, "user-b", 2), (2, "user-a", 1)]

    async def test_finish_keeps_data(self, service, admin, alice):
        await _seed(service, alice)
        await service.submit_problem(alice, "Течь", "Кран", "maintenance")
        await service.finish_season(admin)
        assert len(await service.list_problems()) == 1
        assert (await service.get_user("user-a")).total_points == 1

    async def test_finished_season_rejects_submissions(self, service, admin, alice):
        await _seed(service, alice)
        await service.submit_problem(alice, "Течь", "Кран", "maintenance")
        await service.finish_season(admin)
        problems_before = await service.list_problems()
        history_before = await service.points_history("user-a")

        with pytest.raises(SeasonInactiveError):
            await service.submit_problem(alice, "Искра", "Розетка искрит", "safety")

        assert await service.list_problems() == problems_before
        assert await service.points_history("user-a") == history_before
        user = await service.get_user("user-a")
        assert user.total_points == 1
        assert user.total_problems == 1

    async def test_finish_twice_returns_same_report(self, service, admin, alice):
        await _seed(service, alice)
        await service.submit_problem(alice, "Течь", "Кран", "maintenance")
        first = await service.finish_season(admin)
        second = await service.finish_season(admin)
        assert second == first

    async def test_report_only_after_season_ends(self, service, admin, alice, clock):
        await _seed(service, alice)
        assert await service.get_season_report() is None

        await service.finish_season(admin)
        report = await service.get_season_report()
        assert report is not None
        assert report.is_finished

    async def test_expired_season_has_report(self, service, clock):
        await service.get_season_settings()
        clock.advance(days=31)
        report = await service.get_season_report()
        assert report is not None
        assert not report.is_finished


class TestReset:
    async def test_reset_clears_everything(self, service, admin, alice, bob):
        await _seed(service, alice, bob)
        problem = await service.submit_problem(alice, "Течь", "Кран", "maintenance")
        await service.add_bonus_points(admin, problem.id, 6)
        await service.submit_problem(bob, "Пыль", "Фильтр", "quality")
        before = await service.finish_season(admin)

        state = await service.reset_season(admin)

        assert state.phase == SeasonPhase.ACTIVE
        assert state.current_season != before.season_name
        assert state.current_season.startswith("season-2026-")
        assert await service.get_leaderboard() == []
        assert await service.list_problems() == []
        assert await service.points_history("user-a") == []
        for user in await service.list_users():
            assert user.total_points == 0
            assert user.total_problems == 0
            assert user.level.value == "novice"

    async def test_reset_keeps_previous_length(self, service, admin, clock):
        start = clock.now
        await service.configure_season(admin, "Короткий", start, start + timedelta(days=7))
        state = await service.reset_season(admin)
        assert state.season_end_date - state.season_start_date == timedelta(days=7)

    async def test_reset_twice_is_harmless(self, service, admin, alice):
        await _seed(service, alice)
        await service.reset_season(admin)
        state = await service.reset_season(admin)
        assert state.phase == SeasonPhase.ACTIVE
        assert len(await service.list_users()) == 1

    async def test_submissions_open_after_reset(self, service, admin, alice):
        await _seed(service, alice)
        await service.finish_season(admin)
        await service.reset_season(admin)
        problem = await service.submit_problem(alice, "Новая", "Сезон", "other")
        assert problem.season_id == (await service.get_season_settings()).current_season
