"""Tests for per-context permission overrides."""

from datetime import datetime
from unittest.mock import patch

import pytest

from rolegate.datatypes.permission_datatypes import ContextType
from rolegate.permissions.context_overrides import ContextOverrideStore
from rolegate.util.duration import HOUR_MS, MINUTE_MS

USER = 1001
GUILD = 42


@pytest.fixture()
def store(clock):
    return ContextOverrideStore(clock=clock, local_now=lambda: datetime(2024, 1, 8, 12, 0))


def test_no_configuration_denies(store, make_member):
    assert store.has_context_permission(make_member(), "economy", "chan1") is False


def test_role_grant_and_user_restriction_precedence(store, make_member):
    store.set_context_config("chan1", "channel", {"permissions": {"economy": False}})
    store.set_role_context_permissions("r1", "chan1", ["economy"])
    member = make_member(user_id=USER, role_ids=["r1"])

    # Role grant beats the configuration rule
    assert store.has_context_permission(member, "economy", "chan1") is True

    store.set_user_override(USER, "chan1", restrictions=["economy"])
    # User restriction beats the role grant
    assert store.has_context_permission(member, "economy", "chan1") is False


def test_user_grant_wins_over_everything_context_local(store, make_member):
    store.set_context_config("chan1", "channel", {"restrictions": {"economy": True}})
    store.set_user_override(USER, "chan1", permissions=["economy"], restrictions=["economy"])

    assert store.has_context_permission(make_member(user_id=USER), "economy", "chan1") is True


def test_configuration_rules(store, make_member):
    store.set_context_config(
        "chan1", "channel",
        {"permissions": {"economy": "r1"}, "restrictions": {"shop": ["r2"], "ticket": "r3"}},
    )

    assert store.has_context_permission(make_member(role_ids=["r1"]), "economy", "chan1") is True
    assert store.has_context_permission(make_member(role_ids=["r2"]), "economy", "chan1") is False
    # Restriction matches: denied; restriction does not match: still no grant
    assert store.has_context_permission(make_member(role_ids=["r2"]), "shop", "chan1") is False
    assert store.has_context_permission(make_member(), "ticket", "chan1") is False


def test_global_check_bypasses_context_rules(clock, make_member):
    store = ContextOverrideStore(global_check=lambda member, permission: permission == "economy", clock=clock)
    store.set_context_config("chan1", "channel", {"permissions": {"economy": False}})
    store.set_user_override(USER, "chan1", restrictions=["economy"])

    assert store.has_context_permission(make_member(user_id=USER), "economy", "chan1") is True


def test_composite_rule_uses_global_check(clock, make_member):
    store = ContextOverrideStore(
        global_check=lambda member, permission: permission == "staff",
        clock=clock,
        local_now=lambda: datetime(2024, 1, 8, 12, 0),
    )
    store.set_context_config("chan1", "channel", {"permissions": {"economy": {"permissions": ["staff"]}}})

    assert store.has_context_permission(make_member(), "economy", "chan1") is True


def test_time_restricted_rule(clock, make_member):
    moments = iter([datetime(2024, 1, 8, 12, 0), datetime(2024, 1, 8, 22, 0)])
    store = ContextOverrideStore(clock=clock, local_now=lambda: next(moments))
    store.set_context_config(
        "chan1", "channel",
        {"permissions": {"giveaway": {"timeRestrictions": {"hours": [9, 17]}}}},
    )

    assert store.has_context_permission(make_member(), "giveaway", "chan1") is True
    assert store.has_context_permission(make_member(), "giveaway", "chan1") is False


def test_parent_inheritance(store, make_member):
    store.set_context_config("cat1", "category", {"permissions": {"ticket": "r1"}})
    store.set_context_config("chan1", "channel", {"settings": {"inheritFromParent": True}})
    store.set_context_config("chan2", "channel", {})
    member = make_member(role_ids=["r1"])

    assert store.has_context_permission(member, "ticket", "chan1", "channel", parent_id="cat1") is True
    assert store.has_context_permission(member, "ticket", "chan1", "channel") is False
    assert store.has_context_permission(member, "ticket", "chan2", "channel", parent_id="cat1") is False


def test_child_rule_beats_parent(store, make_member):
    store.set_context_config("cat1", "category", {"permissions": {"ticket": True}})
    store.set_context_config(
        "thread1", "thread",
        {"permissions": {"ticket": False}, "settings": {"inheritFromParent": True}},
    )

    assert store.has_context_permission(make_member(), "ticket", "thread1", "thread", "cat1") is False


def test_categories_do_not_inherit(store, make_member):
    store.set_context_config("cat0", "category", {"permissions": {"ticket": True}})
    store.set_context_config("cat1", "category", {"settings": {"inheritFromParent": True}})

    assert store.has_context_permission(make_member(), "ticket", "cat1", "category", "cat0") is False


def test_self_parent_terminates(store, make_member):
    store.set_context_config("chan1", "channel", {"settings": {"inheritFromParent": True}})

    assert store.has_context_permission(make_member(), "ticket", "chan1", "channel", "chan1") is False


def test_unexpected_error_denies(clock, make_member):
    def exploding(member, permission):
        raise RuntimeError("boom")

    store = ContextOverrideStore(global_check=exploding, clock=clock)

    assert store.has_context_permission(make_member(), "economy", "chan1") is False


def test_missing_member_denies(store):
    assert store.has_context_permission(None, "economy", "chan1") is False


@pytest.mark.parametrize(
    ("context_type", "config", "error"),
    [
        ("forum", {}, "Invalid context type: forum"),
        ("channel", ["economy"], "Configuration must be an object"),
        ("channel", {"permissions": ["economy"]}, "Permissions must be an object"),
        ("channel", {"settings": "yes"}, "Settings must be an object"),
        ("channel", {"permissions": {"root": True}}, "Invalid permission: root"),
        ("channel", {"restrictions": {"root": True}}, "Invalid restriction: root"),
    ],
)
def test_set_context_config_validation(store, context_type, config, error):
    result = store.set_context_config("chan1", context_type, config)

    assert result.success is False
    assert result.error == error
    assert store.get_context_config("chan1") is None


def test_set_context_config_rejects_bad_rule(store):
    result = store.set_context_config("chan1", "channel", {"permissions": {"economy": 2.5}})

    assert result.success is False
    assert result.error.startswith("Invalid rule for permission economy")


def test_set_context_config_details(store, clock):
    result = store.set_context_config("chan1", ContextType.VOICE, {"permissions": {"economy": True}}, "9", "events")

    config = result.details["context_config"]
    assert config.context_type is ContextType.VOICE
    assert config.set_at == clock.now
    assert store.get_all_context_configs() == [config]


def test_remove_context_config_cascades(store):
    store.set_context_config("chan1", "channel", {})
    store.set_context_config("chan2", "channel", {})
    store.set_user_override(1, "chan1", permissions=["economy"])
    store.set_user_override(2, "chan1", restrictions=["shop"])
    store.set_user_override(1, "chan2", permissions=["shop"])
    store.set_role_context_permissions("r1", "chan1", ["ticket"])

    result = store.remove_context_config("chan1")

    assert result.details == {"context_id": "chan1", "removed_user_overrides": 2, "removed_role_permissions": 1}
    assert store.get_user_overrides(1) == [store.get_user_override(1, "chan2")]
    assert store.get_role_context_permissions("r1", "chan1") is None
    assert store.remove_context_config("chan1").error == "No context permissions found"


def test_user_override_validation(store, clock):
    invalid = store.set_user_override(USER, "chan1", permissions=["root"])
    past = store.set_user_override(USER, "chan1", permissions=["economy"], expiry=clock.now)

    assert invalid.error == "Invalid permissions: root"
    assert past.error == "Override expiry must be in the future"
    assert store.get_user_override(USER, "chan1") is None


def test_override_expiry_and_sweep(store, clock, make_member):
    store.set_user_override(USER, "chan1", permissions=["economy"], expiry=clock.now + HOUR_MS)
    store.set_user_override(USER, "chan2", permissions=["economy"])
    member = make_member(user_id=USER)

    assert store.has_context_permission(member, "economy", "chan1") is True

    clock.advance(HOUR_MS + MINUTE_MS)
    with patch("rolegate.permissions.context_overrides.log_event") as log_event:
        removed = store.sweep()

    assert removed == 1
    assert log_event.call_count == 1
    assert store.has_context_permission(member, "economy", "chan1") is False
    assert store.has_context_permission(member, "economy", "chan2") is True


def test_replacing_override_overwrites(store):
    store.set_user_override(USER, "chan1", permissions=["economy"])
    store.set_user_override(USER, "chan1", permissions=["shop"])

    assert store.get_user_override(USER, "chan1").permissions == ["shop"]
    assert len(store.get_user_overrides(USER, "chan1")) == 1


def test_statistics(store, clock):
    store.set_context_config("chan1", "channel", {})
    store.set_context_config("chan2", "channel", {})
    store.set_context_config("cat1", "category", {})
    store.set_user_override(1, "chan1", permissions=["economy"], expiry=clock.now + MINUTE_MS)
    store.set_user_override(2, "chan1", permissions=["economy"])
    store.set_role_context_permissions("r1", "chan1", ["ticket"])
    clock.advance(2 * MINUTE_MS)

    stats = store.get_statistics()

    assert stats["total_contexts"] == 3
    assert stats["contexts_by_type"] == {"channel": 2, "category": 1}
    assert stats["most_used_context_type"] == "channel"
    assert stats["total_user_overrides"] == 2
    assert stats["active_overrides"] == 1
    assert stats["total_role_permissions"] == 1
