"""Tests for ZON field extraction."""

from versioning.manifest import read_manifest_versions, scan_string_fields, tokenize

MANIFEST = '''.{
    .name = .example,
    .version = "0.1.0",
    // .minimum_zig_version = "0.11.0",
    .minimum_zig_version = "0.13.0",
    .dependencies = .{
        .foo = .{
            .url = "https://example.com/foo.tar.gz?minimum_zig_version = \\"9.9.9\\"",
        },
    },
    .paths = .{""},
}
'''


class TestTokenize:
    """Tokenizer behavior."""

    def test_comments_and_whitespace_dropped(self):
        kinds = [t.kind for t in tokenize('// hi\n.a = "b"')]
        assert kinds == ["field", "punct", "string"]

    def test_quoted_field_names(self):
        fields = scan_string_fields('.{ .@"weird name" = "x" }')
        assert fields == {"weird name": "x"}

    def test_escapes_unescaped(self):
        fields = scan_string_fields(r'.a = "tab\there \x41 \"q\""')
        assert fields["a"] == 'tab\there A "q"'


class TestScanFields:
    """Declaration extraction."""

    def test_commented_out_declaration_ignored(self):
        assert scan_string_fields(MANIFEST)["minimum_zig_version"] == "0.13.0"

    def test_lookalike_inside_string_ignored(self):
        fields = scan_string_fields('.url = "x .minimum_zig_version = \\"1.0.0\\""')
        assert "minimum_zig_version" not in fields

    def test_first_declaration_wins(self):
        assert scan_string_fields('.a = "1", .a = "2"')["a"] == "1"

    def test_non_string_values_skipped(self):
        assert "name" not in scan_string_fields(MANIFEST)

    def test_zig_env_zon_output(self):
        text = '.{\n    .zig_exe = "/opt/zig/zig",\n    .global_cache_dir = "/home/u/.cache/zig",\n}\n'
        assert scan_string_fields(text)["global_cache_dir"] == "/home/u/.cache/zig"


class TestReadManifestVersions:
    """Reading build.zig.zon from disk."""

    def test_minimum_version(self, tmp_path):
        path = tmp_path / "build.zig.zon"
        path.write_text(MANIFEST, encoding="utf-8")
        found = read_manifest_versions(path)
        assert found.minimum == "0.13.0"
        assert found.nominated is None

    def test_nominated_version(self, tmp_path):
        path = tmp_path / "build.zig.zon"
        path.write_text('.{ .mach_zig_version = "2024.5.0-mach", .minimum_zig_version = "0.12.0" }')
        found = read_manifest_versions(path)
        assert found.nominated == "2024.5.0-mach"
        assert found.minimum == "0.12.0"

    def test_missing_file_is_empty(self, tmp_path):
        found = read_manifest_versions(tmp_path / "absent.zon")
        assert found.nominated is None and found.minimum is None

    def test_blank_value_treated_as_absent(self, tmp_path):
        path = tmp_path / "build.zig.zon"
        path.write_text('.{ .minimum_zig_version = "  " }')
        assert read_manifest_versions(path).minimum is None
