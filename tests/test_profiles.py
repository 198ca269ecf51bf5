"""Tests for auth profiles and legacy token migration."""

import json

import pytest

from youtube_cli.auth.profiles import ProfileManager
from youtube_cli.config import ConfigStore
from youtube_cli.errors import ProfileError

from conftest import CLIENT_ID, CLIENT_SECRET


@pytest.fixture
def legacy_store(store):
    store.set(
        "oauth",
        {
            "client_id": CLIENT_ID,
            "client_secret": CLIENT_SECRET,
            "port": 3000,
            "refresh_token": "R1",
            "access_token": "A1",
            "expires_at": 1000,
        },
    )
    return store


class TestActiveProfile:
    def test_default_name(self, profiles):
        assert profiles.get_active_profile_name() == "default"

    @pytest.mark.parametrize("name", ["default", "work", "Brand Account", "WORK"])
    def test_new_profile_has_empty_record(self, profiles, name):
        profiles.set_active_profile_name(name)

        assert profiles.get_active_profile_name() == name
        assert profiles.get_active_profile_tokens() == {}

    def test_names_are_case_sensitive(self, profiles):
        profiles.set_active_profile_name("work")
        profiles.set_active_profile_tokens({"access_token": "lower"})
        profiles.set_active_profile_name("Work")

        assert profiles.get_active_profile_tokens() == {}
        assert profiles.list_profiles() == ["work", "Work"]

    def test_switching_keeps_existing_record(self, profiles):
        profiles.set_active_profile_name("work")
        profiles.set_active_profile_tokens({"refresh_token": "RW"})
        profiles.set_active_profile_name("personal")
        profiles.set_active_profile_name("work")

        assert profiles.get_active_profile_tokens() == {"refresh_token": "RW"}

    def test_tokens_without_any_profile(self, profiles):
        assert profiles.get_active_profile_tokens() == {}


class TestMigration:
    def test_moves_legacy_tokens_into_profile(self, legacy_store):
        profiles = ProfileManager(legacy_store)

        profiles.ensure_profiles_migrated()

        assert profiles.get_active_profile_tokens() == {
            "refresh_token": "R1",
            "access_token": "A1",
            "expires_at": 1000,
        }
        assert legacy_store.get("oauth") == {
            "client_id": CLIENT_ID,
            "client_secret": CLIENT_SECRET,
            "port": 3000,
        }
        assert legacy_store.get("activeProfile") == "default"

    def test_uses_stored_active_name(self, legacy_store):
        legacy_store.set("activeProfile", "brand")

        ProfileManager(legacy_store).ensure_profiles_migrated()

        assert list(legacy_store.get("authProfiles")) == ["brand"]

    def test_is_idempotent(self, legacy_store):
        profiles = ProfileManager(legacy_store)

        profiles.ensure_profiles_migrated()
        once = legacy_store.path.read_text()
        profiles.ensure_profiles_migrated()

        assert legacy_store.path.read_text() == once

    def test_nothing_to_migrate(self, profiles, configured_store):
        before = configured_store.get_all()

        profiles.ensure_profiles_migrated()

        assert configured_store.get_all() == before
        assert configured_store.get("authProfiles") is None

    def test_only_copies_fields_that_exist(self, store):
        store.set("oauth", {"client_id": CLIENT_ID, "refresh_token": "R1"})

        ProfileManager(store).ensure_profiles_migrated()

        assert store.get("authProfiles") == {"default": {"refresh_token": "R1"}}

    def test_existing_profiles_win_over_legacy_tokens(self, legacy_store):
        legacy_store.set("authProfiles", {"work": {"refresh_token": "RW"}})

        ProfileManager(legacy_store).ensure_profiles_migrated()

        assert legacy_store.get("authProfiles") == {"work": {"refresh_token": "RW"}}
        assert legacy_store.get("oauth")["refresh_token"] == "R1"

    def test_fills_missing_active_with_first_profile(self, store):
        store.set(
            "authProfiles",
            {"zeta": {"refresh_token": "RZ"}, "alpha": {"refresh_token": "RA"}},
        )

        profiles = ProfileManager(store)
        profiles.ensure_profiles_migrated()

        assert store.get("activeProfile") == "zeta"
        assert profiles.get_active_profile_tokens() == {"refresh_token": "RZ"}

    def test_first_profile_follows_file_order(self, config_dir):
        config_dir.mkdir(parents=True)
        (config_dir / "config.json").write_text(
            '{"authProfiles": {"second": {}, "first": {}}}'
        )

        store = ConfigStore(config_dir)
        ProfileManager(store).ensure_profiles_migrated()

        assert json.loads(store.path.read_text())["activeProfile"] == "second"

    def test_triggered_by_token_read(self, legacy_store):
        assert ProfileManager(legacy_store).get_active_profile_tokens()["access_token"] == "A1"
        assert "access_token" not in legacy_store.get("oauth")


class TestTokenUpdates:
    def test_merge_preserves_other_fields(self, profiles):
        profiles.set_active_profile_tokens(
            {"refresh_token": "R1", "access_token": "A1", "expires_at": 5, "channel_title": "Mine"}
        )

        profiles.set_active_profile_tokens({"access_token": "A2"})

        assert profiles.get_active_profile_tokens() == {
            "refresh_token": "R1",
            "access_token": "A2",
            "expires_at": 5,
            "channel_title": "Mine",
        }

    def test_merge_only_touches_active_profile(self, profiles, configured_store):
        profiles.set_active_profile_name("a")
        profiles.set_active_profile_tokens({"access_token": "AA"})
        profiles.set_active_profile_name("b")
        profiles.set_active_profile_tokens({"access_token": "BB"})

        assert configured_store.get("authProfiles") == {
            "a": {"access_token": "AA"},
            "b": {"access_token": "BB"},
        }

    def test_clear_keeps_profile(self, profiles, configured_store):
        profiles.set_active_profile_name("work")
        profiles.set_active_profile_tokens(
            {
                "refresh_token": "R1",
                "access_token": "A1",
                "expires_at": 5,
                "channel_id": "UC1",
                "channel_title": "Mine",
                "note": "kept",
            }
        )

        profiles.clear_active_profile_tokens()

        assert configured_store.get("authProfiles") == {"work": {"note": "kept"}}

        profiles.set_active_profile_tokens({"access_token": "A2"})
        assert configured_store.get("authProfiles") == {
            "work": {"note": "kept", "access_token": "A2"}
        }

    def test_clear_migrates_legacy_tokens_first(self, legacy_store):
        ProfileManager(legacy_store).clear_active_profile_tokens()

        assert legacy_store.get("authProfiles") == {"default": {}}
        assert "refresh_token" not in legacy_store.get("oauth")


class TestRemoveProfile:
    def test_remove_inactive_profile(self, profiles):
        profiles.set_active_profile_name("old")
        profiles.set_active_profile_name("new")

        profiles.remove_profile("old")

        assert profiles.list_profiles() == ["new"]

    def test_cannot_remove_active_profile(self, profiles):
        profiles.set_active_profile_name("only")

        with pytest.raises(ProfileError):
            profiles.remove_profile("only")

    def test_unknown_profile(self, profiles):
        with pytest.raises(ProfileError):
            profiles.remove_profile("missing")
