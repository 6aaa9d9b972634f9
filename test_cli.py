#!/usr/bin/env python3
"""
End-to-end tests for the dblfinder command line
"""

import builtins
import os
import tempfile
from pathlib import Path

import pytest

from dblfinder import __version__
from dblfinder.cli.main import (
    EXIT_FATAL,
    EXIT_OK,
    Config,
    DuplicateFinder,
    format_size,
    main,
    parse_size,
)


def _tree(root: Path) -> dict:
    files = {
        "a/photo.jpg": b"JPEG" * 100,
        "b/photo.jpg": b"JPEG" * 100,
        "b/photo-copy.jpg": b"JPEG" * 100,
        "a/notes.txt": b"unique notes",
        "c/other.bin": b"X" * 400,
    }
    paths = {}
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        paths[rel] = str(path)
    return paths


def test_list_mode_reports_duplicates(capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        paths = _tree(Path(temp_dir))

        status = main([temp_dir])

        out = capsys.readouterr().out
        assert status == EXIT_OK
        assert "Found 2 unique file sizes" in out
        assert "4 files need to be hashed:" in out
        assert "3 files have duplicated hashes" in out
        assert f"[1] {paths['a/photo.jpg']}" in out
        listed = [line for line in out.splitlines() if line.startswith("[")]
        assert len(listed) == 3
        assert not any("other.bin" in line for line in listed)
        assert all(os.path.exists(p) for p in paths.values())


def test_no_candidates_is_success(capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        (Path(temp_dir) / "one").write_bytes(b"1")
        (Path(temp_dir) / "two").write_bytes(b"22")

        assert main([temp_dir]) == EXIT_OK
        assert "No files need to be hashed" in capsys.readouterr().out


def test_same_size_different_content(capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        (Path(temp_dir) / "one").write_bytes(b"aa")
        (Path(temp_dir) / "two").write_bytes(b"bb")

        assert main([temp_dir]) == EXIT_OK
        assert "No files have duplicated hashes" in capsys.readouterr().out


def test_keep_mode_with_prefer_and_answer(monkeypatch, capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        paths = _tree(Path(temp_dir))
        answers = iter(["3"])
        monkeypatch.setattr(builtins, "input", lambda prompt="": next(answers))

        status = main([temp_dir, "--action", "keep", "--prefer", "/a/", "--fs-limit", "2"])

        assert status == EXIT_OK
        assert os.path.exists(paths["a/photo.jpg"])
        assert os.path.exists(paths["b/photo.jpg"])
        assert not os.path.exists(paths["b/photo-copy.jpg"])
        assert f"[preferred] {paths['a/photo.jpg']}" in capsys.readouterr().out


def test_dry_run_deletes_nothing(monkeypatch, capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        paths = _tree(Path(temp_dir))
        monkeypatch.setattr(builtins, "input", lambda prompt="": "1")

        status = main([temp_dir, "--action", "keep", "--dry-run"])

        out = capsys.readouterr().out
        assert status == EXIT_OK
        assert all(os.path.exists(p) for p in paths.values())
        assert "(skipped)" in out


def test_overlapping_roots_never_offer_a_unique_file_for_deletion(monkeypatch, capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        only = Path(temp_dir) / "sub" / "only.txt"
        only.parent.mkdir()
        only.write_bytes(b"the only copy")
        monkeypatch.chdir(temp_dir)
        monkeypatch.setattr(builtins, "input", lambda prompt="": "1")

        status = main([".", "sub", "--action", "keep"])

        out = capsys.readouterr().out
        assert status == EXIT_OK
        assert only.exists()
        assert "No files need to be hashed" in out
        assert "Removing:" not in out


def test_skip_manual_without_prefer_skips_everything(monkeypatch, capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        paths = _tree(Path(temp_dir))

        def no_input(prompt=""):
            raise AssertionError("should not prompt")

        monkeypatch.setattr(builtins, "input", no_input)

        assert main([temp_dir, "--action", "keep", "--skip-manual"]) == EXIT_OK
        assert all(os.path.exists(p) for p in paths.values())
        assert "Preferred file not found" in capsys.readouterr().out


def test_ignore_pattern(capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        _tree(Path(temp_dir))

        main([temp_dir, "--ignore", "copy"])

        out = capsys.readouterr().out
        assert "2 files have duplicated hashes" in out
        assert "photo-copy" not in out


def test_verify_drops_sampled_false_positive(capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        (Path(temp_dir) / "x").write_bytes(b"HEAD" + b"1" * 10)
        (Path(temp_dir) / "y").write_bytes(b"HEAD" + b"2" * 10)

        main([temp_dir, "--sample-size", "4"])
        assert "2 files have duplicated hashes" in capsys.readouterr().out

        main([temp_dir, "--sample-size", "4", "--verify"])
        assert "No files have duplicated hashes" in capsys.readouterr().out


def test_missing_root_is_fatal(capsys):
    with tempfile.TemporaryDirectory() as temp_dir:
        status = main([os.path.join(temp_dir, "nope")])

        out = capsys.readouterr().out
        assert status == EXIT_FATAL
        assert "directory walk returned an error" in out
        assert "unique file sizes" not in out


def test_invalid_options_are_usage_errors():
    with pytest.raises(SystemExit) as excinfo:
        main(["--prefer", "(broken"])
    assert excinfo.value.code == 2

    with pytest.raises(SystemExit) as excinfo:
        main(["--fs-limit", "-1"])
    assert excinfo.value.code == 2

    with pytest.raises(SystemExit) as excinfo:
        main(["--sample-size", "lots"])
    assert excinfo.value.code == 2


def test_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])
    assert excinfo.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_finder_collects_stats():
    with tempfile.TemporaryDirectory() as temp_dir:
        _tree(Path(temp_dir))

        finder = DuplicateFinder(Config(roots=[temp_dir], quiet=True))
        sets = finder.find_duplicates()

        assert len(sets) == 1
        assert finder.stats.duplicate_files == 3
        assert finder.stats.wasted_space == 800
        assert finder.stats.files_hashed == 4


def test_config_defaults():
    config = Config()
    config.validate()
    assert config.roots == ["."]
    assert config.fs_limit == 100
    assert config.sample_size == 1024 * 1024
    assert config.action == "list"


def test_parse_size():
    assert parse_size("1MB") == 1024 * 1024
    assert parse_size("4kb") == 4096
    assert parse_size("512") == 512


def test_format_size():
    assert format_size(512) == "512.0 B"
    assert format_size(2048) == "2.0 KB"
