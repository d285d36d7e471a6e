"""Tests for the tarpeek command line interface."""

from __future__ import annotations

import logging

import pytest

from tarpeek.cli import main as cli_main
from tarpeek.cli_helpers import map_exception_to_exit_code
from tarpeek.common.errors import (
    InvalidArchiveError,
    InvalidPatternError,
    NoMatchError,
    SizeExceededError,
)
from tarpeek.constants import ExitCodes


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def run_cli(args):
    with pytest.raises(SystemExit) as excinfo:
        cli_main(args)
    return excinfo.value.code


def test_no_arguments_prints_help(capsys):
    assert run_cli([]) == ExitCodes.OK
    assert "usage: tarpeek" in capsys.readouterr().out


def test_list_all_entries(capsys, simple_tar):
    cli_main(["list", simple_tar])
    assert capsys.readouterr().out.splitlines() == ["a/", "a/b.txt", "c.txt"]


def test_list_with_pattern_and_flags(capsys, natural_tgz):
    cli_main(["list", natural_tgz, "PASSWORDS.TXT", "--no-anchored", "--ignore-case"])
    assert capsys.readouterr().out.splitlines() == [
        "a/b/c/passwords.txt", "passwords.txt", "x/passwords.txt",
    ]

    cli_main(["list", natural_tgz, "a/b", "--no-recursion", "-z"])
    assert capsys.readouterr().out.splitlines() == ["a/b/"]


def test_cat_to_stdout(capsysbinary, simple_tar):
    cli_main(["cat", simple_tar, "c.txt"])
    assert capsysbinary.readouterr().out == b"top level c\n"


def test_cat_to_file(tmp_path, natural_tgz):
    target = tmp_path / "out.txt"
    cli_main(["cat", natural_tgz, "*/passwords.txt", "--wildcards",
              "--no-wildcards-match-slash", "-o", str(target)])
    assert target.read_bytes() == b"guest:guest\n"


def test_cat_missing_entry(capsys, simple_tar):
    assert run_cli(["cat", simple_tar, "nope.txt"]) == ExitCodes.NO_MATCH
    assert "No match for nope.txt in archive" in capsys.readouterr().err


def test_cat_size_limit(simple_tar):
    assert run_cli(["cat", simple_tar, "c.txt", "--max-size", "2"]) == ExitCodes.SIZE_EXCEEDED


def test_conflicting_compression_flags(simple_tar):
    assert run_cli(["list", simple_tar, "-z", "-J"]) == ExitCodes.INVALID_USAGE


def test_unsupported_compression_program(simple_tar):
    assert run_cli(["list", simple_tar, "-I", "compress"]) == ExitCodes.INVALID_USAGE


def test_bad_archive(simple_tar):
    assert run_cli(["list", simple_tar, "--gzip"]) == ExitCodes.BAD_ARCHIVE


def test_missing_archive(tmp_path):
    assert run_cli(["list", str(tmp_path / "absent.tar")]) == ExitCodes.FILE_ERROR


def test_exception_mapping():
    assert map_exception_to_exit_code(InvalidPatternError("x")) == ExitCodes.INVALID_USAGE
    assert map_exception_to_exit_code(NoMatchError("x")) == ExitCodes.NO_MATCH
    assert map_exception_to_exit_code(SizeExceededError(1, 2)) == ExitCodes.SIZE_EXCEEDED
    assert map_exception_to_exit_code(InvalidArchiveError("x")) == ExitCodes.BAD_ARCHIVE
    assert map_exception_to_exit_code(RuntimeError("x")) is None


def test_log_level_comes_from_settings(monkeypatch, simple_tar):
    levels = []
    monkeypatch.setattr("tarpeek.cli.configure_logging", lambda level=None, **kwargs: levels.append(level))
    monkeypatch.setenv("TARPEEK_LOG_LEVEL", "INFO")

    cli_main(["list", simple_tar])
    cli_main(["list", simple_tar, "--debug"])
    assert levels == ["INFO", "DEBUG"]
