"""Tests for modbuild.manifest."""

from __future__ import annotations

import pytest

from modbuild.errors import TaskFailure
from modbuild.manifest import (
    ManifestInfo,
    compute_version,
    read_manifest,
    set_exported_functions,
    set_manifest_version,
    update_descriptor,
    update_manifest,
)


NESTED = """@{
    ModuleVersion = '1.3.0'
    RequiredModules = @(
        @{
            ModuleName = 'PSFramework'
            ModuleVersion = '1.7.0'
        }
    )
    FunctionsToExport = '*'
}
"""


def _info(major: int = 1, minor: int = 3) -> ManifestInfo:
    return ManifestInfo(path="Demo.psd1", module_version=f"{major}.{minor}.0", major=major, minor=minor)


class TestReadManifest:
    def test_reads_major_minor(self, tmp_path):
        f = tmp_path / "Demo.psd1"
        f.write_text("@{\n    ModuleVersion = '1.3.7'\n}\n")
        info = read_manifest(f)
        assert (info.major, info.minor) == (1, 3)
        assert info.module_version == "1.3.7"

    def test_ignores_required_module_versions(self, tmp_path):
        f = tmp_path / "Demo.psd1"
        f.write_text("@{\n    RequiredModules = @(@{ ModuleName = 'Dep'; ModuleVersion = '9.8.0' })\n    ModuleVersion = '1.3.0'\n}\n")
        assert read_manifest(f).module_version == "1.3.0"

    def test_double_quoted_two_part_version(self, tmp_path):
        f = tmp_path / "Demo.psd1"
        f.write_text('@{ \nModuleVersion = "2.0"\n}')
        info = read_manifest(f)
        assert (info.major, info.minor) == (2, 0)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(TaskFailure, match="manifest not found"):
            read_manifest(tmp_path / "nope.psd1")

    def test_missing_version_raises(self, tmp_path):
        f = tmp_path / "Demo.psd1"
        f.write_text("@{ RootModule = 'Demo.psm1' }")
        with pytest.raises(TaskFailure, match="ModuleVersion"):
            read_manifest(f)


class TestComputeVersion:
    def test_build_number_is_patch(self):
        assert compute_version(_info(1, 3), 42) == "1.3.42"

    def test_missing_build_number_is_zero(self):
        assert compute_version(_info(1, 3)) == "1.3.0"

    def test_zero_build_number(self):
        assert compute_version(_info(4, 1), 0) == "4.1.0"

    def test_negative_build_number_raises(self):
        with pytest.raises(TaskFailure, match="negative"):
            compute_version(_info(), -1)


class TestSetManifestVersion:
    def test_replaces_line_wholesale(self):
        text = "@{\n    ModuleVersion = '1.3.0' # old\n    Author = 'me'\n}"
        result = set_manifest_version(text, "1.3.42")
        assert "    ModuleVersion = '1.3.42'\n" in result
        assert "# old" not in result
        assert "Author = 'me'" in result

    def test_preserves_crlf(self):
        text = "@{\r\n  ModuleVersion = '1.0'\r\n}\r\n"
        assert set_manifest_version(text, "1.0.5") == "@{\r\n  ModuleVersion = '1.0.5'\r\n}\r\n"

    def test_leaves_required_module_pins(self):
        result = set_manifest_version(NESTED, "1.3.42")
        assert "    ModuleVersion = '1.3.42'\n" in result
        assert "            ModuleVersion = '1.7.0'\n" in result

    def test_inline_required_module_untouched(self):
        text = "@{\n    RequiredModules = @(@{ ModuleName = 'Dep'; ModuleVersion = '9.8.0' })\n    ModuleVersion = '1.3.0'\n}"
        result = set_manifest_version(text, "1.3.42")
        assert "ModuleVersion = '9.8.0'" in result
        assert "    ModuleVersion = '1.3.42'\n" in result

    def test_missing_line_raises(self):
        with pytest.raises(TaskFailure):
            set_manifest_version("@{}", "1.0.0")


class TestSetExportedFunctions:
    def test_replaces_wildcard(self):
        result = set_exported_functions("  FunctionsToExport = '*'\n", ["Get-A", "Set-B"])
        assert result == "  FunctionsToExport = @('Get-A', 'Set-B')\n"

    def test_replaces_multiline_array(self):
        text = "FunctionsToExport = @(\n    'Old-One',\n    'Old-Two'\n)\nAliasesToExport = @()\n"
        result = set_exported_functions(text, ["New-One"])
        assert result == "FunctionsToExport = @('New-One')\nAliasesToExport = @()\n"

    def test_empty_list(self):
        assert set_exported_functions("FunctionsToExport = '*'", []) == "FunctionsToExport = @()"

    def test_added_after_version_when_absent(self):
        text = "@{\n    ModuleVersion = '1.0.0'\n}"
        result = set_exported_functions(text, ["Get-A"])
        assert result == "@{\n    ModuleVersion = '1.0.0'\n    FunctionsToExport = @('Get-A')\n}"


class TestUpdateDescriptor:
    def test_replaces_placeholder(self, tmp_path):
        f = tmp_path / "Demo.nuspec"
        f.write_text("<version>__VERSION__</version>")
        update_descriptor(f, "1.3.42")
        assert f.read_text() == "<version>1.3.42</version>"

    def test_replaces_every_placeholder(self, tmp_path):
        f = tmp_path / "Demo.nuspec"
        f.write_text("<version>__VERSION__</version><tag>v__VERSION__</tag>")
        update_descriptor(f, "2.0.1")
        assert "__VERSION__" not in f.read_text()
        assert f.read_text().count("2.0.1") == 2

    def test_warns_without_placeholder(self, tmp_path, caplog):
        f = tmp_path / "Demo.nuspec"
        f.write_text("<version>1.0.0</version>")
        update_descriptor(f, "2.0.1")
        assert "No __VERSION__ placeholder" in caplog.text


class TestLineEndings:
    def test_insertion_reuses_crlf(self):
        text = "@{\r\n    ModuleVersion = '1.0.0'\r\n}\r\n"
        result = set_exported_functions(text, ["Get-A"])
        assert result == "@{\r\n    ModuleVersion = '1.0.0'\r\n    FunctionsToExport = @('Get-A')\r\n}\r\n"

    def test_update_manifest_keeps_crlf(self, tmp_path):
        f = tmp_path / "Demo.psd1"
        f.write_bytes(b"@{\r\n    ModuleVersion = '1.3.0'\r\n    FunctionsToExport = '*'\r\n}\r\n")
        update_manifest(f, "1.3.42", ["Get-A"])
        assert f.read_bytes() == b"@{\r\n    ModuleVersion = '1.3.42'\r\n    FunctionsToExport = @('Get-A')\r\n}\r\n"

    def test_update_manifest_keeps_lf(self, tmp_path):
        f = tmp_path / "Demo.psd1"
        f.write_bytes(b"@{\n    ModuleVersion = '1.3.0'\n}\n")
        update_manifest(f, "1.3.42", [])
        assert f.read_bytes() == b"@{\n    ModuleVersion = '1.3.42'\n    FunctionsToExport = @()\n}\n"

    def test_update_descriptor_keeps_crlf(self, tmp_path):
        f = tmp_path / "Demo.nuspec"
        f.write_bytes(b"<package>\r\n  <version>__VERSION__</version>\r\n</package>\r\n")
        update_descriptor(f, "1.3.42")
        assert f.read_bytes() == b"<package>\r\n  <version>1.3.42</version>\r\n</package>\r\n"
