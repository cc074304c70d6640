"""Tests for the filerange command line."""

import json

import pytest
from click.testing import CliRunner

from filerange.cli.main import cli


@pytest.fixture
def data_dir(tmp_path):
    (tmp_path / "a.txt").write_bytes(b"alpha\nbravo\n")
    (tmp_path / "b.txt").write_bytes(b"charlie\n")
    return tmp_path


@pytest.mark.integration
def test_split_prints_work_items(data_dir):
    result = CliRunner().invoke(
        cli, ["--log-level", "ERROR", "split", str(data_dir / "a.txt"), "--bundle-size", "5"]
    )

    assert result.exit_code == 0, result.output
    rows = [line.split("\t") for line in result.stdout.splitlines()]
    assert [(int(s), int(e)) for _, s, e in rows] == [(0, 5), (5, 10), (10, 12)]


@pytest.mark.integration
def test_read_text(data_dir):
    result = CliRunner().invoke(
        cli,
        ["--log-level", "ERROR", "read", str(data_dir / "*.txt"), "--bundle-size", "4"],
    )

    assert result.exit_code == 0, result.output
    assert sorted(result.stdout.splitlines()) == ["alpha", "bravo", "charlie"]


@pytest.mark.integration
def test_read_jsonl_failure_and_skip(tmp_path):
    path = tmp_path / "events.jsonl"
    path.write_text('{"id": 1}\nnot-json\n{"id": 3}\n')
    args = ["--log-level", "CRITICAL", "read", str(path), "--format", "jsonl"]

    failed = CliRunner().invoke(cli, args)
    skipped = CliRunner().invoke(cli, args + ["--skip-errors", "--no-redistribute"])

    assert failed.exit_code == 1
    assert skipped.exit_code == 0, skipped.output
    assert [json.loads(line) for line in skipped.stdout.splitlines()] == [{"id": 1}]


@pytest.mark.integration
def test_read_uses_config_file(data_dir, tmp_path):
    config = tmp_path / "cfg.yaml"
    config.write_text("concurrency_limit: 1\nmax_workers: 1\nuses_redistribution: false\n")

    result = CliRunner().invoke(
        cli,
        ["--log-level", "ERROR", "read", str(data_dir / "*.txt"), "--config", str(config)],
    )

    assert result.exit_code == 0, result.output
    assert result.stdout.splitlines() == ["alpha", "bravo", "charlie"]


@pytest.mark.integration
def test_read_keeps_logs_off_stdout(data_dir):
    result = CliRunner().invoke(
        cli,
        [
            "--log-level",
            "DEBUG",
            "--json-logs",
            "read",
            str(data_dir / "a.txt"),
            "--no-redistribute",
        ],
    )

    assert result.exit_code == 0, result.output
    assert result.stdout.splitlines() == ["alpha", "bravo"]
    assert "starting_read" in result.stderr
