"""
Tests for version ordering (actm/comparator.py).
"""

from actm.comparator import compare_versions, is_newer, parse_semver


class TestCompareVersions:
    """Tests for version comparison."""

    def test_compare_versions_semantic_less_than(self):
        """Test semantic version comparison (less than)."""
        assert compare_versions("1.0.0", "1.0.1") == -1
        assert compare_versions("1.0.0", "1.1.0") == -1
        assert compare_versions("1.0.0", "2.0.0") == -1

    def test_compare_versions_semantic_greater_than(self):
        """Test semantic version comparison (greater than)."""
        assert compare_versions("1.0.1", "1.0.0") == 1
        assert compare_versions("2.0.0", "1.99.99") == 1

    def test_compare_versions_semantic_equal(self):
        """Test semantic version comparison (equal)."""
        assert compare_versions("2.5.3", "2.5.3") == 0

    def test_compare_versions_numeric_components(self):
        """Multi-digit components compare numerically for semver input."""
        assert compare_versions("1.10.0", "1.9.0") == 1

    def test_compare_versions_prerelease(self):
        """Test pre-release version comparison."""
        assert compare_versions("1.0.0-alpha", "1.0.0-beta") == -1
        assert compare_versions("1.0.0-beta", "1.0.0") == -1

    def test_compare_versions_prerelease_identifiers_are_distinct(self):
        """Pre-release labels compare as ASCII strings, not as aliases."""
        assert compare_versions("1.0.0-alpha.1", "1.0.0-dev.1") == -1
        assert compare_versions("1.0.0-preview.1", "1.0.0-rc.1") == -1
        assert compare_versions("1.0.0-a", "1.0.0-alpha") == -1

    def test_compare_versions_prerelease_numeric_identifiers(self):
        """Numeric identifiers compare numerically and sort below alphanumeric ones."""
        assert compare_versions("1.0.0-preview.2", "1.0.0-preview.10") == -1
        assert compare_versions("1.0.0-alpha.1", "1.0.0-alpha.beta") == -1
        assert compare_versions("1.0.0-0", "1.0.0-alpha") == -1

    def test_compare_versions_shorter_prerelease_sorts_lower(self):
        """A shorter identifier set is lower when the shared prefix is equal."""
        assert compare_versions("1.0.0-alpha", "1.0.0-alpha.1") == -1

    def test_compare_versions_release_beats_any_prerelease(self):
        """A release outranks every pre-release of the same core."""
        assert compare_versions("1.0.0-alpha.beta", "1.0.0") == -1
        assert compare_versions("0.9.0-nightly.1", "0.9.0") == -1
        assert compare_versions("0.9.0", "0.9.0-nightly.20250101") == 1

    def test_compare_versions_semver_precedence_chain(self):
        """The ordering example from semver.org holds end to end."""
        chain = [
            "1.0.0-alpha",
            "1.0.0-alpha.1",
            "1.0.0-alpha.beta",
            "1.0.0-beta",
            "1.0.0-beta.2",
            "1.0.0-beta.11",
            "1.0.0-rc.1",
            "1.0.0",
        ]
        for lower, higher in zip(chain, chain[1:]):
            assert compare_versions(lower, higher) == -1
            assert compare_versions(higher, lower) == 1

    def test_compare_versions_build_metadata_ignored(self):
        """Build metadata does not affect precedence."""
        assert compare_versions("1.0.0+build.1", "1.0.0+build.2") == 0

    def test_compare_versions_fallback_string(self):
        """Non-semver input falls back to string comparison."""
        assert compare_versions("abc", "def") == -1
        assert compare_versions("def", "abc") == 1
        assert compare_versions("nightly", "nightly") == 0

    def test_compare_versions_mixed_falls_back(self):
        """One non-semver side also uses string comparison."""
        assert compare_versions("1.0", "1.0.0") == -1


class TestIsNewer:
    """Tests for staleness checks."""

    def test_is_newer_true(self):
        """Latest strictly above current."""
        assert is_newer("1.2.3", "1.3.0") is True

    def test_is_newer_false(self):
        """Latest below current."""
        assert is_newer("2.0.0", "1.9.9") is False

    def test_is_newer_equal(self):
        """Equal versions are not newer."""
        assert is_newer("1.0.0", "1.0.0") is False

    def test_is_newer_preview_to_release(self):
        """A preview build is stale once the release is published."""
        assert is_newer("0.9.0-preview.3", "0.9.0") is True
        assert is_newer("0.9.0", "0.9.0-preview.3") is False

    def test_is_newer_lexicographic(self):
        """Non-semver strings compare lexicographically."""
        assert is_newer("abc", "def") is True


class TestParseSemver:
    """Tests for strict semver parsing."""

    def test_parse_semver_valid(self):
        """Plain triplet parses."""
        assert parse_semver("1.2.3") is not None

    def test_parse_semver_rejects_prefix(self):
        """A leading "v" is not semver."""
        assert parse_semver("v1.2.3") is None

    def test_parse_semver_rejects_two_components(self):
        """Two components are not semver."""
        assert parse_semver("1.2") is None

    def test_parse_semver_empty(self):
        """Empty input returns None."""
        assert parse_semver("") is None

    def test_parse_semver_prerelease_without_pep440_form(self):
        """Pre-release tags outside PEP 440 still parse as semver."""
        assert parse_semver("1.0.0-alpha.beta") is not None
        assert parse_semver("0.9.0-nightly.20250101.abc123") is not None

    def test_parse_semver_ignores_build_metadata(self):
        """Build metadata is not part of the key."""
        assert parse_semver("1.0.0-rc.1+build.5") == parse_semver("1.0.0-rc.1")
