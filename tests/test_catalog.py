"""
Tests for the built-in tool catalog (actm/catalog.py).
"""

import json

import pytest

from actm.catalog import GithubRepo, ToolCatalog, ToolDefinition
from actm.models import InstallMethod


EXPECTED_TOOLS = [
    "claude", "gemini", "codex", "qwen", "iflow", "crush", "opencode",
    "droid", "goose", "cline", "copilot", "codebuddy", "kimi",
]


def write_catalog(tmp_path, entries):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(entries), encoding="utf-8")
    return path


class TestBuiltinCatalog:
    """Tests for the shipped catalog file."""

    def test_builtin_catalog_order(self):
        """Catalog keeps file order."""
        catalog = ToolCatalog.load()
        assert catalog.names() == EXPECTED_TOOLS

    def test_builtin_catalog_unique_names(self):
        """Every entry has a distinct name."""
        catalog = ToolCatalog.load()
        assert len(set(catalog.names())) == len(catalog)

    def test_builtin_cline_is_extension(self):
        """Cline is declared as an editor extension."""
        cline = ToolCatalog.load().get("cline")
        assert cline is not None
        assert cline.vscode_extension == "saoudrizwan.claude-dev"
        assert cline.extract_version("saoudrizwan.claude-dev@3.2.1\n") == "3.2.1"

    def test_builtin_claude_packages(self):
        """Claude declares its npm package and source repository."""
        claude = ToolCatalog.load().get("claude")
        assert claude.package_for(InstallMethod.NPM) == "@anthropic-ai/claude-code"
        assert claude.github == GithubRepo("anthropics", "claude-code")


class TestToolDefinition:
    """Tests for ToolDefinition decoding."""

    def test_from_dict_minimal(self):
        """Defaults apply for optional fields."""
        d = ToolDefinition.from_dict({"name": "sample", "command": "sample"})
        assert d.display_name == "sample"
        assert d.version_args == ("--version",)
        assert d.extract_version("sample 1.2.3") == "1.2.3"
        assert d.declared_methods() == []

    def test_from_dict_version_flag(self):
        """A single versionFlag is accepted."""
        d = ToolDefinition.from_dict({"name": "s", "command": "s", "versionFlag": "-V"})
        assert d.version_args == ("-V",)

    def test_from_dict_missing_command(self):
        """Missing command is rejected."""
        with pytest.raises(ValueError):
            ToolDefinition.from_dict({"name": "sample"})

    def test_from_dict_bad_regex(self):
        """Invalid pattern is rejected."""
        with pytest.raises(ValueError, match="versionRegex"):
            ToolDefinition.from_dict({"name": "s", "command": "s", "versionRegex": "("})

    def test_extract_version_without_group(self):
        """Whole match is used when the pattern has no group."""
        d = ToolDefinition.from_dict({"name": "s", "command": "s", "versionRegex": r"\d+\.\d+"})
        assert d.extract_version("s 4.2") == "4.2"

    def test_extract_version_no_match(self):
        """No match yields None."""
        d = ToolDefinition.from_dict({"name": "s", "command": "s"})
        assert d.extract_version("no digits here") is None

    def test_declared_methods_order(self):
        """Providers are listed npm, pip, brew regardless of declaration order."""
        d = ToolDefinition.from_dict({
            "name": "s",
            "command": "s",
            "packages": {"brew": "s-brew", "npm": "s-npm"},
        })
        assert d.declared_methods() == [InstallMethod.NPM, InstallMethod.BREW]

    def test_package_for_binary(self):
        """Binary installs have no package identifier."""
        d = ToolDefinition.from_dict({"name": "s", "command": "s", "packages": {"npm": "s"}})
        assert d.package_for(InstallMethod.BINARY) is None

    def test_to_dict_round_trip(self):
        """to_dict output decodes back to an equal definition."""
        data = {
            "name": "sample",
            "displayName": "Sample",
            "command": "sample",
            "versionArgs": ["version"],
            "versionRegex": r"v(\d+\.\d+\.\d+)",
            "packages": {"npm": "sample", "github": {"owner": "o", "repo": "r"}},
            "configPaths": ["~/.sample.json"],
            "homepage": "https://example.com",
        }
        d = ToolDefinition.from_dict(data)
        assert d.to_dict() == data
        assert ToolDefinition.from_dict(d.to_dict()) == d


class TestCatalogLoad:
    """Tests for loading catalog files."""

    def test_load_skips_bad_entries(self, tmp_path):
        """Bad entries are skipped, good ones kept in order."""
        path = write_catalog(tmp_path, [
            {"name": "a", "command": "a"},
            {"name": "broken"},
            {"name": "b", "command": "b", "versionRegex": "("},
            {"name": "c", "command": "c"},
        ])
        catalog = ToolCatalog.load(path)
        assert catalog.names() == ["a", "c"]

    def test_load_ignores_duplicates(self, tmp_path):
        """First definition of a name wins."""
        path = write_catalog(tmp_path, [
            {"name": "a", "command": "first"},
            {"name": "a", "command": "second"},
        ])
        catalog = ToolCatalog.load(path)
        assert len(catalog) == 1
        assert catalog.get("a").command == "first"

    def test_load_missing_file(self, tmp_path):
        """Missing file yields an empty catalog."""
        catalog = ToolCatalog.load(tmp_path / "nope.json")
        assert len(catalog) == 0

    def test_load_not_a_list(self, tmp_path):
        """A JSON object is not a catalog."""
        path = tmp_path / "catalog.json"
        path.write_text('{"name": "a"}', encoding="utf-8")
        assert len(ToolCatalog.load(path)) == 0

    def test_lookup(self, tmp_path):
        """get/has_tool find entries by name."""
        catalog = ToolCatalog.load(write_catalog(tmp_path, [{"name": "a", "command": "a"}]))
        assert catalog.has_tool("a")
        assert not catalog.has_tool("b")
        assert catalog.get("b") is None
        assert [d.name for d in catalog] == ["a"]
        assert catalog.to_dicts()[0]["name"] == "a"
