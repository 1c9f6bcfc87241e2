"""
Tests for the modtransplant command line.

The in-process tests call main() directly; ModTransplantCliTest runs the
module as a subprocess the way a build script would.
"""
import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

import pytest

from modtransplant import __version__
from modtransplant.__main__ import main

DEST = """module example.com/dest

go 1.21

require (
	example.com/pkg v1.2.0
	example.com/src v0.1.0
)
"""

SRC = """module example.com/src

go 1.21

require (
	example.com/pkg v1.1.0
	example.com/extra v0.3.0 // indirect
)

exclude example.com/bad v0.0.1
"""

MERGED = """module example.com/dest

go 1.21

require (
	example.com/pkg v1.1.0
	example.com/extra v0.3.0 // indirect
)

exclude example.com/bad v0.0.1
"""


@pytest.fixture
def files(tmp_path):
    dest = tmp_path / "dest.mod"
    src = tmp_path / "src.mod"
    dest.write_text(DEST)
    src.write_text(SRC)
    return dest, src


class TestMergeCommand:
    """Tests for 'modtransplant merge'."""

    def test_merge_writes_manifest_to_stdout(self, files, capsys):
        dest, src = files

        assert main(["merge", "--dest", str(dest), "--src", str(src)]) == 0

        captured = capsys.readouterr()
        assert captured.out == MERGED
        assert "(require) drop: example.com/src@v0.1.0" in captured.err
        assert "(require) replace version: example.com/pkg v1.2.0 -> v1.1.0" in captured.err
        assert "(exclude) add new: example.com/bad@v0.0.1" in captured.err

    def test_single_dash_flags(self, files, capsys):
        dest, src = files

        assert main(["merge", f"-dest={dest}", f"-src={src}"]) == 0
        assert capsys.readouterr().out == MERGED

    def test_quiet_suppresses_decisions(self, files, capsys):
        dest, src = files

        assert main(["merge", "--dest", str(dest), "--src", str(src), "--quiet"]) == 0

        captured = capsys.readouterr()
        assert captured.out == MERGED
        assert "(require)" not in captured.err

    def test_missing_source_is_usage_error(self, files, capsys):
        dest, _ = files

        assert main(["merge", "--dest", str(dest)]) == 2

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "usage:" in captured.err

    def test_irreconcilable_versions_fail_without_output(self, tmp_path, capsys):
        dest = tmp_path / "dest.mod"
        src = tmp_path / "src.mod"
        dest.write_text("module example.com/dest\n\nrequire example.com/pkg v1.2.0\n")
        src.write_text("module example.com/src\n\nrequire example.com/pkg v0.0.0-20190101000000-abcdef000000\n")

        assert main(["merge", "--dest", str(dest), "--src", str(src)]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "cannot reconcile" in captured.err
        assert "(release vs pseudo-version)" in captured.err

        assert main(["merge", "--dest", str(dest), "--src", str(src), "--force-overwrite"]) == 0
        assert "example.com/pkg v0.0.0-20190101000000-abcdef000000" in capsys.readouterr().out

    def test_unreadable_file(self, tmp_path, capsys):
        missing = tmp_path / "missing.mod"
        src = tmp_path / "src.mod"
        src.write_text(SRC)

        assert main(["merge", "--dest", str(missing), "--src", str(src)]) == 1
        assert f"cannot read {missing}" in capsys.readouterr().err

    def test_non_utf8_file_names_path(self, tmp_path, capsys):
        dest = tmp_path / "dest.mod"
        dest.write_bytes(b"module example.com/dest\n\n// \xff\xfe\n")
        src = tmp_path / "src.mod"
        src.write_text(SRC)

        assert main(["merge", "--dest", str(dest), "--src", str(src)]) == 1

        err = capsys.readouterr().err
        assert f"cannot read {dest}: not UTF-8 text" in err
        assert "Traceback" not in err

    def test_forced_version_line_names_version_kinds(self, tmp_path, capsys):
        dest = tmp_path / "dest.mod"
        src = tmp_path / "src.mod"
        dest.write_text("module example.com/dest\n\nrequire example.com/pkg v1.2.0\n")
        src.write_text("module example.com/src\n\nrequire example.com/pkg v1.3.0-rc.1\n")

        assert main(["merge", "--dest", str(dest), "--src", str(src), "--force-overwrite"]) == 0
        assert (
            "(require) force version: example.com/pkg v1.2.0 -> v1.3.0-rc.1 (release -> pre-release)\n"
            in capsys.readouterr().err
        )

    def test_parse_error_reported(self, tmp_path, capsys):
        dest = tmp_path / "dest.mod"
        dest.write_text("module example.com/dest\n\nrequire (\n")
        src = tmp_path / "src.mod"
        src.write_text(SRC)

        assert main(["merge", "--dest", str(dest), "--src", str(src)]) == 1
        assert "unterminated require block" in capsys.readouterr().err

    def test_report_written(self, files, tmp_path, capsys):
        dest, src = files
        report_path = tmp_path / "report.json"

        assert main(["merge", "--dest", str(dest), "--src", str(src), "--report", str(report_path)]) == 0

        report = json.loads(report_path.read_text())
        actions = [d['action'] for d in report['decisions']]
        assert actions == ["drop", "replace version", "add new", "add new"]
        assert report['decisions'][1]['previous'] == "example.com/pkg@v1.2.0"


class TestOtherCommands:
    """Tests for 'fmt', 'check' and top-level options."""

    def test_fmt(self, tmp_path, capsys):
        path = tmp_path / "go.mod"
        path.write_text("module   example.com/m\n\n\nrequire example.com/a   v1.0.0\n")

        assert main(["fmt", str(path)]) == 0
        assert capsys.readouterr().out == "module example.com/m\n\nrequire example.com/a v1.0.0\n"

    def test_check_clean(self, files, capsys):
        _, src = files

        assert main(["check", str(src)]) == 0
        assert "Result: ✓" in capsys.readouterr().out

    def test_check_reports_duplicates(self, tmp_path, capsys):
        path = tmp_path / "go.mod"
        path.write_text(
            "module example.com/m\n"
            "\n"
            "require example.com/a v1.0.0\n"
            "require example.com/a v1.1.0\n"
            "require example.com/m v0.1.0\n"
            "exclude example.com/b v1.0.0\n"
            "exclude example.com/b v1.0.0\n"
        )

        assert main(["check", str(path)]) == 1

        out = capsys.readouterr().out
        assert "require: example.com/a listed 2 times (v1.0.0, v1.1.0)" in out
        assert "module requires itself" in out
        assert "exclude: example.com/b@v1.0.0 listed 2 times" in out

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage:" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["--version"])
        assert excinfo.value.code == 0
        assert __version__ in capsys.readouterr().out


class ModTransplantCliTest(unittest.TestCase):
    """Runs the CLI as a separate process."""

    @classmethod
    def setUpClass(cls):
        cls.project_root = Path(__file__).parent.parent

    def _run(self, *args):
        env = dict(os.environ)
        env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(self.project_root), env.get("PYTHONPATH")]))
        cmd = [sys.executable, "-m", "modtransplant"] + list(args)
        return subprocess.run(cmd, capture_output=True, text=True, env=env)

    def _write(self, directory, name, content):
        path = os.path.join(directory, name)
        with open(path, "w") as f:
            f.write(content)
        return path

    def test_merge_round_trip(self):
        with tempfile.TemporaryDirectory() as tmp:
            dest = self._write(tmp, "dest.mod", DEST)
            src = self._write(tmp, "src.mod", SRC)

            result = self._run("merge", "--dest", dest, "--src", src)

            self.assertEqual(result.returncode, 0, f"modtransplant failed: {result.stderr}")
            self.assertEqual(result.stdout, MERGED)
            self.assertIn("(require) add new: example.com/extra@v0.3.0 (indirect)", result.stderr)

            merged = self._write(tmp, "merged.mod", result.stdout)
            again = self._run("merge", "--dest", merged, "--src", src)

            self.assertEqual(again.returncode, 0)
            self.assertEqual(again.stdout, MERGED)
            self.assertNotIn("add new", again.stderr)

    def test_conflicting_replacement_exit_code(self):
        with tempfile.TemporaryDirectory() as tmp:
            dest = self._write(tmp, "dest.mod",
                               "module example.com/dest\n\nreplace example.com/pkg v1.0.0 => ../pkg-v1-fork\n")
            src = self._write(tmp, "src.mod",
                              "module example.com/src\n\nreplace example.com/pkg v1.0.0 => ../pkg-v2-fork\n")

            result = self._run("merge", "--dest", dest, "--src", src)

            self.assertEqual(result.returncode, 1)
            self.assertEqual(result.stdout, "")
            self.assertIn("new path/version do not", result.stderr)

    def test_missing_arguments(self):
        result = self._run("merge")
        self.assertEqual(result.returncode, 2)
        self.assertIn("usage:", result.stderr)


if __name__ == '__main__':
    unittest.main()
