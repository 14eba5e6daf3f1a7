"""
Alert rule store tests.

Rules are scoped by owner: another user's rule behaves exactly like a
missing one and is never modified.
"""
import pytest

from conftest import make_raw_neo
from neowatch.core.errors import DuplicateNotification, InvalidAlertKind, Unauthorized
from neowatch.models.alert import AlertKind, AlertRule
from neowatch.services import alerts
from neowatch.services.neo_parser import parse_neo

OWNER = 1
INTRUDER = 2


class TestAlertRules:
    """Test creation, listing and ownership checks."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, session_factory, clock):
        async with session_factory() as db:
            rule = await alerts.create_alert_rule(db, OWNER, "distance", 1_000_000.0, clock=clock)
            await alerts.create_alert_rule(db, OWNER, AlertKind.HAZARDOUS, clock=clock)
            await alerts.create_alert_rule(db, INTRUDER, "sentry", clock=clock)

            owned = await alerts.list_alert_rules(db, OWNER)

        assert rule.kind == AlertKind.DISTANCE
        assert rule.threshold == 1_000_000.0
        assert rule.created_at == clock()
        assert {r.kind for r in owned} == {AlertKind.DISTANCE, AlertKind.HAZARDOUS}

    @pytest.mark.asyncio
    async def test_flag_kinds_ignore_threshold(self, session_factory, clock):
        async with session_factory() as db:
            rule = await alerts.create_alert_rule(db, OWNER, "sentry", 12.0, clock=clock)
        assert rule.threshold == 0.0

    @pytest.mark.asyncio
    async def test_invalid_kind(self, session_factory):
        async with session_factory() as db:
            with pytest.raises(InvalidAlertKind):
                await alerts.create_alert_rule(db, OWNER, "velocity", 10.0)
            assert await alerts.list_alert_rules(db, OWNER) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("threshold", [None, 0.0, -5.0])
    async def test_numeric_kinds_need_positive_threshold(self, session_factory, threshold):
        async with session_factory() as db:
            with pytest.raises(ValueError):
                await alerts.create_alert_rule(db, OWNER, "diameter", threshold)

    @pytest.mark.asyncio
    async def test_toggle_bumps_updated_at(self, session_factory, clock):
        async with session_factory() as db:
            rule = await alerts.create_alert_rule(db, OWNER, "hazardous", clock=clock)
        created_at = rule.created_at
        clock.now = clock.now.replace(hour=18)

        async with session_factory() as db:
            toggled = await alerts.toggle_alert_rule(db, OWNER, rule.id, False, clock=clock)

        assert toggled.is_active is False
        assert toggled.updated_at == clock()
        assert toggled.created_at == created_at

    @pytest.mark.asyncio
    async def test_other_users_cannot_toggle_or_delete(self, session_factory, clock):
        async with session_factory() as db:
            rule = await alerts.create_alert_rule(db, OWNER, "hazardous", clock=clock)

        async with session_factory() as db:
            with pytest.raises(Unauthorized):
                await alerts.toggle_alert_rule(db, INTRUDER, rule.id, False)
        async with session_factory() as db:
            with pytest.raises(Unauthorized):
                await alerts.delete_alert_rule(db, INTRUDER, rule.id)

        async with session_factory() as db:
            unchanged = await db.get(AlertRule, rule.id)
            assert unchanged is not None
            assert unchanged.is_active is True
            assert unchanged.updated_at == rule.updated_at

    @pytest.mark.asyncio
    async def test_missing_rule_is_unauthorized(self, session_factory):
        async with session_factory() as db:
            with pytest.raises(Unauthorized):
                await alerts.delete_alert_rule(db, OWNER, 404)

    @pytest.mark.asyncio
    async def test_delete(self, session_factory, clock):
        async with session_factory() as db:
            rule = await alerts.create_alert_rule(db, OWNER, "hazardous", clock=clock)
            await alerts.delete_alert_rule(db, OWNER, rule.id)
            assert await alerts.list_alert_rules(db, OWNER) == []


class TestNotifications:
    """Test notification persistence and read state."""

    @pytest.mark.asyncio
    async def test_duplicate_insert_is_rejected(self, session_factory, clock):
        obj = parse_neo(make_raw_neo(hazardous=True), clock=clock)
        async with session_factory() as db:
            rule = await alerts.create_alert_rule(db, OWNER, "hazardous", clock=clock)
            await alerts.create_notification(db, rule, obj, "first", clock().date(), clock=clock)

        async with session_factory() as db:
            with pytest.raises(DuplicateNotification):
                await alerts.create_notification(db, rule, obj, "second", clock().date(), clock=clock)
            assert len(await alerts.list_notifications(db, OWNER)) == 1

    @pytest.mark.asyncio
    async def test_mark_read_checks_owner(self, session_factory, clock):
        obj = parse_neo(make_raw_neo(hazardous=True), clock=clock)
        async with session_factory() as db:
            rule = await alerts.create_alert_rule(db, OWNER, "hazardous", clock=clock)
            notification = await alerts.create_notification(db, rule, obj, "msg", clock().date(), clock=clock)

        async with session_factory() as db:
            with pytest.raises(Unauthorized):
                await alerts.mark_notification_read(db, INTRUDER, notification.id)
            marked = await alerts.mark_notification_read(db, OWNER, notification.id)

        assert marked.is_read is True
