from __future__ import annotations

import hashlib
import logging
import sys
from pathlib import Path

import pytest

from treesum import cli
from treesum.manifest import errors, hash_utils, writer
from treesum.manifest.writer import MANIFEST_NAME


@pytest.fixture(autouse=True)
def _reset_cli_logging():
    yield
    logger = logging.getLogger(cli.LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


def _tree(root: Path) -> Path:
    (root / "b").mkdir(parents=True)
    (root / "a.txt").write_bytes(b"hello")
    (root / "b" / "c.txt").write_bytes(b"world")
    return root


def test_success_exit_0_and_confirmation_on_stdout(tmp_path: Path, capsys) -> None:
    root = _tree(tmp_path / "tree")

    rc = cli.main([str(root)])

    assert rc == errors.EXIT_OK
    out = capsys.readouterr().out
    assert out.strip() == f"Saved sha256s (sorted by filename) to: {root / MANIFEST_NAME}"
    assert (root / MANIFEST_NAME).exists()


def test_directory_defaults_to_cwd(monkeypatch, tmp_path: Path) -> None:
    root = _tree(tmp_path / "tree")
    monkeypatch.chdir(root)

    assert cli.main([]) == errors.EXIT_OK

    lines = (root / MANIFEST_NAME).read_text(encoding="utf-8").splitlines()
    assert [ln.split("\t")[1] for ln in lines] == ["a.txt", "b/c.txt"]


def test_discovered_style_matches_find_output(monkeypatch, tmp_path: Path) -> None:
    root = _tree(tmp_path / "tree")
    monkeypatch.chdir(tmp_path)

    assert cli.main(["tree", "--path-style", "discovered"]) == errors.EXIT_OK

    lines = (root / MANIFEST_NAME).read_text(encoding="utf-8").splitlines()
    assert [ln.split("\t")[1] for ln in lines] == ["tree/a.txt", "tree/b/c.txt"]


def test_not_a_directory_exit_3(tmp_path: Path, capsys) -> None:
    rc = cli.main([str(tmp_path / "missing")])

    assert rc == errors.EXIT_NOT_A_DIRECTORY
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "is not a directory" in captured.err


def test_missing_digest_exit_4(monkeypatch, tmp_path: Path) -> None:
    root = _tree(tmp_path / "tree")
    monkeypatch.setattr(hash_utils.hashlib, "algorithms_available", set())

    assert cli.main([str(root)]) == errors.EXIT_PRECONDITION
    assert not (root / MANIFEST_NAME).exists()


def _fail_reading(monkeypatch, basename: str) -> None:
    real = hash_utils.sha256_file

    def _sha256_file(path):
        if Path(path).name == basename:
            raise PermissionError(13, "Permission denied", str(path))
        return real(path)

    monkeypatch.setattr(hash_utils, "sha256_file", _sha256_file)


def test_read_failure_exit_5_keeps_prior_manifest(monkeypatch, tmp_path: Path, capsys) -> None:
    root = _tree(tmp_path / "tree")
    assert cli.main([str(root)]) == errors.EXIT_OK
    prior = (root / MANIFEST_NAME).read_bytes()

    _fail_reading(monkeypatch, "c.txt")
    rc = cli.main([str(root)])

    assert rc == errors.EXIT_READ
    assert "ERROR: cannot read" in capsys.readouterr().err
    assert (root / MANIFEST_NAME).read_bytes() == prior


def test_lenient_flag_skips_unreadable_and_exits_0(monkeypatch, tmp_path: Path, capsys) -> None:
    root = _tree(tmp_path / "tree")
    _fail_reading(monkeypatch, "c.txt")

    rc = cli.main([str(root), "--lenient"])

    assert rc == errors.EXIT_OK
    assert "WARN: 1 unreadable file(s) were skipped" in capsys.readouterr().err
    lines = (root / MANIFEST_NAME).read_text(encoding="utf-8").splitlines()
    assert lines == [f"{hashlib.sha256(b'hello').hexdigest()}\ta.txt"]


def test_lenient_from_environment(monkeypatch, tmp_path: Path) -> None:
    root = _tree(tmp_path / "tree")
    _fail_reading(monkeypatch, "c.txt")
    monkeypatch.setenv("TREESUM_LENIENT", "yes")

    assert cli.main([str(root)]) == errors.EXIT_OK


def test_publish_failure_exit_6(monkeypatch, tmp_path: Path) -> None:
    root = _tree(tmp_path / "tree")

    def _broken_replace(src, dst):
        raise OSError(18, "Invalid cross-device link")

    monkeypatch.setattr(writer.os, "replace", _broken_replace)

    assert cli.main([str(root)]) == errors.EXIT_WRITE
    assert sorted(p.name for p in root.iterdir()) == ["a.txt", "b"]


@pytest.mark.skipif(sys.platform == "win32", reason="newline is not allowed in Windows filenames")
def test_newline_in_filename_exit_7(tmp_path: Path, capsys) -> None:
    root = _tree(tmp_path / "tree")
    (root / "two\nlines.txt").write_bytes(b"x")

    assert cli.main([str(root)]) == errors.EXIT_UNSAFE_PATH
    assert "tab or newline" in capsys.readouterr().err
    assert not (root / MANIFEST_NAME).exists()


def test_help_exits_0() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--help"])
    assert excinfo.value.code == 0


def test_bad_jobs_value_is_a_usage_error(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(tmp_path), "--jobs", "0"])
    assert excinfo.value.code == errors.EXIT_USAGE


def test_log_file_receives_debug_records(tmp_path: Path) -> None:
    root = _tree(tmp_path / "tree")
    log_file = tmp_path / "logs" / "run.log"

    assert cli.main([str(root), "--jobs", "2", "--log-file", str(log_file)]) == errors.EXIT_OK

    text = log_file.read_text(encoding="utf-8")
    assert "found 2 file(s)" in text
    assert "published" in text


def test_invalid_jobs_from_environment_is_a_usage_error(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TREESUM_JOBS", "0")

    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(tmp_path)])
    assert excinfo.value.code == errors.EXIT_USAGE
    assert not (tmp_path / MANIFEST_NAME).exists()


def test_jobs_from_environment(monkeypatch, tmp_path: Path) -> None:
    root = _tree(tmp_path / "tree")
    monkeypatch.setenv("TREESUM_JOBS", "3")

    assert cli.main([str(root)]) == errors.EXIT_OK


def test_unusable_summary_target_exit_6_before_publish(tmp_path: Path, capsys) -> None:
    root = _tree(tmp_path / "tree")
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")

    rc = cli.main([str(root), "--summary", str(blocker / "summary.json")])

    assert rc == errors.EXIT_WRITE
    assert "ERROR: cannot create directory" in capsys.readouterr().err
    assert not (root / MANIFEST_NAME).exists()


def test_summary_directory_target_exit_6(tmp_path: Path) -> None:
    root = _tree(tmp_path / "tree")
    summary_dir = tmp_path / "summary.json"
    summary_dir.mkdir()

    assert cli.main([str(root), "--summary", str(summary_dir)]) == errors.EXIT_WRITE
    assert not (root / MANIFEST_NAME).exists()


def test_summary_failure_after_publish_is_a_warning(monkeypatch, tmp_path: Path, capsys) -> None:
    root = _tree(tmp_path / "tree")

    def _broken_summary(path, summary, **kwargs):
        raise errors.WriteError(path, "publish", OSError(28, "No space left on device"))

    monkeypatch.setattr(cli, "write_run_summary", _broken_summary)

    rc = cli.main([str(root), "--summary", str(tmp_path / "summary.json")])

    assert rc == errors.EXIT_OK
    captured = capsys.readouterr()
    assert "WARN: run summary not written" in captured.err
    assert "Saved sha256s" in captured.out
    assert (root / MANIFEST_NAME).exists()


def test_unopenable_log_file_exit_6(tmp_path: Path, capsys) -> None:
    root = _tree(tmp_path / "tree")
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")

    rc = cli.main([str(root), "--log-file", str(blocker / "run.log")])

    assert rc == errors.EXIT_WRITE
    assert "ERROR: cannot open log file" in capsys.readouterr().err
    assert not (root / MANIFEST_NAME).exists()
