import pytest

from packwarden.packs.models import Release
from packwarden.packs.versions import is_new_release_available, is_newer, parse_semver


class TestParseSemver:

    def test_plain_and_prefixed_tags_match(self):
        assert parse_semver("v1.14.0") == parse_semver("1.14.0")

    def test_ordering(self):
        tags = ["v1.15.0", "v1.14.2", "v2.0.0", "v1.14.10", "v1.14.0"]
        ordered = sorted(tags, key=parse_semver)

        assert ordered == ["v1.14.0", "v1.14.2", "v1.14.10", "v1.15.0", "v2.0.0"]

    def test_prerelease_sorts_before_release(self):
        assert parse_semver("v1.15.0-rc1") < parse_semver("v1.15.0")
        assert parse_semver("v1.15.0-rc1") > parse_semver("v1.14.9")

    def test_missing_minor_and_patch(self):
        assert parse_semver("v2") == parse_semver("v2.0.0")

    @pytest.mark.parametrize("tag", ["latest", "", "v1.x", "release-1.0"])
    def test_unparseable(self, tag):
        assert parse_semver(tag) is None


class TestReleaseComparison:

    def test_is_newer(self):
        assert is_newer(Release(2, "v1.15.0"), Release(1, "v1.14.0"))
        assert not is_newer(Release(1, "v1.14.0"), Release(2, "v1.15.0"))
        assert not is_newer(Release(1, "v1.14.0"), Release(1, "v1.14.0"))

    def test_unparseable_is_never_newer(self):
        assert not is_newer(Release(2, "nightly"), Release(1, "v1.14.0"))

    def test_new_release_available(self):
        available = [Release(1, "v1.14.0"), Release(2, "v1.15.0"), Release(3, "v1.16.0")]

        assert is_new_release_available(Release(2, "v1.15.0"), available)
        assert not is_new_release_available(Release(3, "v1.16.0"), available)
        assert not is_new_release_available(Release(1, "v1.14.0"), [])
