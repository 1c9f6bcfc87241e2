"""Tests for manifest and decision formatting."""

import json

from modtransplant import __version__
from modtransplant.formatters import DecisionFormatter, ManifestFormatter, auto_quote
from modtransplant.merger import merge_manifests
from modtransplant.models import Manifest, ModuleCoordinate
from modtransplant.parsers import ManifestParser

CANONICAL = (
    "// Header comment\n"
    "module example.com/dest\n"
    "\n"
    "go 1.21\n"
    "toolchain go1.21.5\n"
    "\n"
    "require (\n"
    "\tgithub.com/pkg/errors v0.9.1\n"
    "\tgolang.org/x/text v0.3.7 // indirect\n"
    ")\n"
    "\n"
    "replace github.com/old/mod v1.0.0 => github.com/new/mod v1.1.0\n"
    "\n"
    "exclude golang.org/x/net v0.0.1\n"
    "\n"
    "retract [v1.0.0, v1.0.5] // broken\n"
)


class TestManifestFormatter:
    """Tests for ManifestFormatter.format."""

    def test_canonical_text_is_stable(self):
        manifest = ManifestParser.parse(CANONICAL)
        assert ManifestFormatter.format(manifest) == CANONICAL

    def test_minimal_manifest(self):
        assert ManifestFormatter.format(Manifest(module="example.com/m")) == "module example.com/m\n"

    def test_blocks_for_multiple_entries(self):
        manifest = Manifest(module="example.com/m")
        manifest.add_replace("example.com/a", "", "../a", "")
        manifest.add_replace("example.com/b", "v1.0.0", "example.com/b-fork", "v1.0.1")
        manifest.add_exclude("example.com/c", "v0.1.0")

        assert ManifestFormatter.format(manifest) == (
            "module example.com/m\n"
            "\n"
            "replace (\n"
            "\texample.com/a => ../a\n"
            "\texample.com/b v1.0.0 => example.com/b-fork v1.0.1\n"
            ")\n"
            "\n"
            "exclude example.com/c v0.1.0\n"
        )

    def test_separate_indirect_blocks_kept(self):
        content = (
            "module example.com/m\n"
            "\n"
            "go 1.17\n"
            "\n"
            "require example.com/direct v1.0.0\n"
            "\n"
            "require (\n"
            "\texample.com/x v1.0.0 // indirect\n"
            "\texample.com/y v1.0.0 // indirect\n"
            ")\n"
        )
        dest = ManifestParser.parse(content)
        src = ManifestParser.parse("module example.com/src\n\nrequire example.com/x v1.0.0\n")

        merged = merge_manifests(dest, src).manifest

        assert ManifestFormatter.format(merged) == (
            "module example.com/m\n"
            "\n"
            "go 1.17\n"
            "\n"
            "require (\n"
            "\texample.com/direct v1.0.0\n"
            "\texample.com/x v1.0.0\n"
            ")\n"
            "\n"
            "require example.com/y v1.0.0 // indirect\n"
        )

    def test_comments_preserved(self):
        content = (
            "module example.com/m\n"
            "\n"
            "require (\n"
            "\t// used by the CLI\n"
            "\texample.com/a v1.0.0 // indirect; pinned\n"
            "\texample.com/b v1.0.0\n"
            ")\n"
            "\n"
            "// end of file\n"
        )
        manifest = ManifestParser.parse(content)
        assert ManifestFormatter.format(manifest) == content

    def test_header_suffix_comments_survive_merge(self):
        content = (
            "module example.com/m // Deprecated: use example.com/m/v2\n"
            "\n"
            "go 1.21 // pinned\n"
            "toolchain go1.21.5 // matches CI\n"
            "\n"
            "require example.com/a v1.0.0\n"
        )
        dest = ManifestParser.parse(content)
        src = ManifestParser.parse("module example.com/src\n\nrequire example.com/a v1.0.0\n")

        assert ManifestFormatter.format(dest) == content
        assert ManifestFormatter.format(merge_manifests(dest, src).manifest) == content

    def test_quoting(self):
        assert auto_quote("example.com/plain") == "example.com/plain"
        assert auto_quote("example.com/with space") == '"example.com/with space"'
        assert auto_quote("") == '""'

        manifest = Manifest(module="example.com/with space")
        assert ManifestFormatter.format(manifest) == 'module "example.com/with space"\n'


class TestDecisionFormatter:
    """Tests for decision output."""

    def _result(self):
        dest = ManifestParser.parse("module example.com/dest\n")
        src = ManifestParser.parse(
            "module example.com/src\n"
            "\n"
            "require github.com/pkg/errors v0.9.1\n"
            "\n"
            "replace github.com/pkg/errors v0.9.1 => ../errors\n"
        )
        return merge_manifests(dest, src)

    def test_lines(self):
        text = DecisionFormatter.format_as_lines(self._result().decisions)
        assert text == (
            "(require) add new: github.com/pkg/errors@v0.9.1 (direct)\n"
            "(replace) add new: github.com/pkg/errors@v0.9.1 => ../errors\n"
        )

    def test_json_report(self):
        report = json.loads(DecisionFormatter.format_as_json(
            self._result().decisions, "dest/go.mod", "src/go.mod", force_overwrite=False
        ))

        assert report['tool'] == {'name': 'modtransplant', 'version': __version__}
        assert report['destination'] == "dest/go.mod"
        assert report['forceOverwrite'] is False

        require, replace = report['decisions']
        assert require['section'] == 'require'
        assert require['action'] == 'add new'
        assert require['module'] == "github.com/pkg/errors@v0.9.1"
        assert require['purl'] == "pkg:golang/github.com/pkg/errors@v0.9.1"
        assert replace['target'] == "../errors"
        assert replace['targetPurl'] is None


class TestModuleCoordinate:

    def test_key_and_locality(self):
        assert ModuleCoordinate("example.com/a", "v1.0.0").key == "example.com/a@v1.0.0"
        assert ModuleCoordinate("example.com/a").key == "example.com/a"
        assert ModuleCoordinate("../a").is_local
        assert not ModuleCoordinate("example.com/a").is_local

    def test_equality_is_by_string(self):
        assert ModuleCoordinate("example.com/a", "v1.2") != ModuleCoordinate("example.com/a", "v1.2.0")
        assert ModuleCoordinate("example.com/a", "v1.2.0") == ModuleCoordinate("example.com/a", "v1.2.0")
