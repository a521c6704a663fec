"""
Tests for legacy app models — type parsing, identity, databag lookup,
archive selection.
"""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from localdev.core.errors import ConfigNotFound
from localdev.core.models.legacy import (
    AppType,
    Archive,
    DatabagRecord,
    LegacyApp,
    RepoDetails,
    select_current_archive,
)


class TestAppType:
    @pytest.mark.parametrize("raw,expected", [
        ("drupal", AppType.DRUPAL),
        ("Drupal7", AppType.DRUPAL),
        ("drupal8", AppType.DRUPAL),
        ("wp", AppType.WORDPRESS),
        (" WordPress ", AppType.WORDPRESS),
        ("joomla", AppType.UNKNOWN),
        ("", AppType.UNKNOWN),
        (None, AppType.UNKNOWN),
    ])
    def test_parse(self, raw, expected):
        assert AppType.parse(raw) is expected

    def test_short_name(self):
        assert AppType.WORDPRESS.short_name == "wp"
        assert AppType.DRUPAL.short_name == "drupal"


class TestLegacyApp:
    def test_container_name(self):
        app = LegacyApp(name="foo", environment="prod")
        assert app.container_name == "legacy-foo-prod"
        assert str(app.rel_path) == "legacy/foo-prod"

    def test_defaults(self):
        app = LegacyApp(name="foo", environment="prod")
        assert app.app_type is None
        assert app.web_port is None
        assert app.archive_path is None
        assert "{name}-web" in app.compose_template

    def test_app_type_string(self):
        assert LegacyApp(name="a", environment="b", app_type="wp").app_type is AppType.WORDPRESS

    def test_assignment_validated(self):
        app = LegacyApp(name="a", environment="b")
        app.app_type = "drupal"
        assert app.app_type is AppType.DRUPAL
        with pytest.raises(ValidationError):
            app.web_port = "not-a-port"

    @pytest.mark.parametrize("bad", ["", "a/b", "..", "."])
    def test_rejects_bad_identifiers(self, bad):
        with pytest.raises(ValidationError):
            LegacyApp(name=bad, environment="prod")


class TestDatabagRecord:
    def _record(self) -> DatabagRecord:
        return DatabagRecord.from_data("foo", {
            "production": {"aws_bucket": "b1", "unrelated": 1},
            "staging": {"aws_bucket": "b2"},
            "owner": "ops",
        })

    def test_skips_non_mapping_values(self):
        assert set(self._record().environments) == {"production", "staging"}

    def test_exact_name(self):
        assert self._record().get_environment("production").aws_bucket == "b1"

    def test_alias(self):
        record = self._record()
        assert record.get_environment("prod").aws_bucket == "b1"
        assert record.get_environment("stage").aws_bucket == "b2"

    def test_missing(self):
        with pytest.raises(ConfigNotFound) as exc:
            self._record().get_environment("dev")
        assert "dev" in str(exc.value)

    def test_records_are_immutable(self):
        env = self._record().get_environment("prod")
        with pytest.raises(ValidationError):
            env.aws_bucket = "other"


class TestRepoDetails:
    @pytest.mark.parametrize("url", [
        "git@github.com:drud/foo.git",
        "https://github.com/drud/foo",
        "https://github.com/drud/foo.git",
        "ssh://git@github.com/drud/foo.git",
    ])
    def test_from_url(self, url):
        details = RepoDetails.from_url(url, branch="master")
        assert (details.host, details.org, details.name) == ("github.com", "drud", "foo")
        assert details.branch == "master"

    def test_unparseable(self):
        details = RepoDetails.from_url("", branch="main")
        assert details.name == ""
        assert details.branch == "main"


class TestSelectCurrentArchive:
    def _at(self, key, year=None):
        ts = datetime(year, 6, 1, tzinfo=UTC) if year else None
        return Archive(key=key, last_modified=ts)

    def test_empty(self):
        assert select_current_archive([]) is None

    def test_most_recent_regardless_of_order(self):
        archives = [self._at("a", 2018), self._at("z", 2016), self._at("m", 2017)]
        assert select_current_archive(archives).key == "a"

    def test_key_breaks_ties(self):
        archives = [self._at("b", 2018), self._at("c", 2018), self._at("a", 2018)]
        assert select_current_archive(archives).key == "c"

    def test_untimestamped_sort_first(self):
        archives = [self._at("z"), self._at("a", 2010)]
        assert select_current_archive(archives).key == "a"

    def test_filename(self):
        assert Archive(key="foo/prod-foo-1.tar.gz").filename == "prod-foo-1.tar.gz"
