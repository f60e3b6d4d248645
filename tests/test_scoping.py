"""Tests for reading and scoping secrets from a store."""
import pytest

from secret_sync.secrets.domains.errors import SecretListingError
from secret_sync.secrets.domains.models import Environment
from secret_sync.secrets.workflows.scoping import get_scoped_secrets


def _by_name(secrets):
    return {secret.name: secret for secret in secrets}


class TestGetScopedSecrets:
    """Test suite for get_scoped_secrets."""

    def test_concrete_environment_trims_names(self, source_store):
        """Test that syncing to dev keeps dev, nonprod and global secrets with trimmed names."""
        scoped = _by_name(get_scoped_secrets(source_store, Environment.DEV))

        assert set(scoped) == {
            "apps/my-app/db-password",
            "apps/my-app/api-key",
            "apps/shared/license",
        }
        assert scoped["apps/my-app/db-password"].data == {"password": "dev-pw"}
        assert scoped["apps/my-app/db-password"].environment is Environment.DEV
        assert scoped["apps/shared/license"].environment is Environment.GLOBAL

    def test_group_environment_keeps_names(self, source_store):
        """Test that syncing to nonprod does not trim suffixes."""
        scoped = _by_name(get_scoped_secrets(source_store, Environment.NONPROD))

        assert set(scoped) == {
            "apps/my-app/db-password-dev",
            "apps/my-app/api-key-nonprod",
            "apps/shared/license",
        }

    def test_prod_excludes_nonprod(self, source_store):
        scoped = _by_name(get_scoped_secrets(source_store, Environment.PROD))

        assert set(scoped) == {"apps/my-app/db-password", "apps/shared/license"}
        assert scoped["apps/my-app/db-password"].data == {"password": "prod-pw"}

    def test_global_takes_everything_with_an_environment(self, source_store):
        scoped = _by_name(get_scoped_secrets(source_store, Environment.GLOBAL))

        assert "apps/orphan" not in scoped
        assert "apps/my-app/db-password-prod" in scoped
        assert "apps/my-app/db-password-dev" in scoped

    @pytest.mark.parametrize("env", list(Environment))
    def test_secret_without_environment_is_never_in_scope(self, source_store, env):
        names = {secret.name for secret in get_scoped_secrets(source_store, env)}
        assert "apps/orphan" not in names

    def test_no_target_reads_everything_untrimmed(self, source_store):
        """Test that the destination view keeps every secret as stored."""
        scoped = _by_name(get_scoped_secrets(source_store))

        assert set(scoped) == set(source_store.secrets)
        assert scoped["apps/orphan"].environment is None

    def test_read_failure_skips_secret(self, source_store, caplog):
        source_store.fail_reads.add("apps/my-app/db-password-dev")

        scoped = _by_name(get_scoped_secrets(source_store, Environment.DEV))

        assert "apps/my-app/db-password" not in scoped
        assert "apps/shared/license" in scoped
        assert "apps/my-app/db-password-dev" in caplog.text

    def test_listing_failure_raises(self, source_store):
        source_store.fail_list = True

        with pytest.raises(SecretListingError):
            get_scoped_secrets(source_store, Environment.DEV)

    def test_trim_collision_prefers_most_specific_environment(self, make_store, caplog):
        """Test that db-dev wins over db-nonprod and db-global when syncing to dev."""
        store = make_store({
            "db-global": {"data": {"v": "global"}},
            "db-dev": {"data": {"v": "dev"}},
            "db-nonprod": {"data": {"v": "nonprod"}},
        })

        scoped = get_scoped_secrets(store, Environment.DEV)

        assert len(scoped) == 1
        assert scoped[0].name == "db"
        assert scoped[0].data == {"v": "dev"}
        assert "defined by both db-dev (dev) and" in caplog.text

    def test_trim_collision_nonprod_beats_global(self, make_store):
        store = make_store({
            "db-nonprod": {"data": {"v": "nonprod"}},
            "db-global": {"data": {"v": "global"}},
        })

        scoped = get_scoped_secrets(store, Environment.TEST)

        assert [s.data for s in scoped] == [{"v": "nonprod"}]

    @pytest.mark.parametrize("names", [("db-dev", "db"), ("db", "db-dev")])
    def test_equal_rank_collision_ignores_listing_order(self, make_store, caplog, names):
        """Test that an untrimmed name wins a tie, whatever order the store lists it in."""
        entries = {
            "db-dev": {"data": {"v": "suffix"}},
            "db": {"data": {"v": "tagged"}, "tags": {"Environment": "dev"}},
        }
        store = make_store({name: entries[name] for name in names})

        scoped = get_scoped_secrets(store, Environment.DEV)

        assert [(s.name, s.data) for s in scoped] == [("db", {"v": "tagged"})]
        assert "defined by both db (dev) and db-dev (dev)" in caplog.text
        assert "using db and ignoring db-dev" in caplog.text
