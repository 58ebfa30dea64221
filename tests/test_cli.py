"""CLI behaviour: exit codes for fail-soft, fail-fast and init errors."""

import logging

import httpx
import pytest
from click.testing import CliRunner

import fake_finnhub
import main as cli


@pytest.fixture(autouse=True)
def restore_logging():
	root = logging.getLogger()
	handlers, level = root.handlers[:], root.level
	yield
	root.handlers[:] = handlers
	root.setLevel(level)


@pytest.fixture
def key_file(tmp_path):
	path = tmp_path / "finnhub.key"
	path.write_text(fake_finnhub.API_KEY + "\n")
	return str(path)


@pytest.fixture
def fake_api(monkeypatch):
	real = cli.make_provider

	def make_provider(key_file, base_url=None):
		transport = httpx.ASGITransport(app=fake_finnhub.app)
		return real(key_file, "http://fake/api/v1", transport=transport)

	monkeypatch.setattr(cli, "make_provider", make_provider)


def test_fail_soft_prints_summary_and_exits_zero(key_file, fake_api):
	result = CliRunner().invoke(cli.main, [
		"--key-file", key_file, "--items", "40", "--workers", "4",
		"--symbol", "AAPL", "--symbol", "NOPE", "--report-every", "10",
	])
	assert result.exit_code == 0, result.output
	assert "20/40 succeed." in result.output
	assert "successfully got 10 results" in result.output


def test_fail_fast_exits_nonzero(key_file, fake_api):
	result = CliRunner().invoke(cli.main, [
		"--key-file", key_file, "--endpoint", "profile", "--items", "40", "--workers", "1",
		"--symbol", "AAPL", "--symbol", "NOPE", "--fail-fast",
	])
	assert result.exit_code == 1
	assert "err = company name is missing for symbol NOPE" in result.output
	assert "1/" in result.output


def test_unreadable_key_file_is_fatal(tmp_path, fake_api):
	result = CliRunner().invoke(cli.main, ["--key-file", str(tmp_path / "missing.key"), "--items", "5"])
	assert result.exit_code == 2
	assert "initialization failed" in result.output


def test_invalid_config_is_rejected(key_file):
	result = CliRunner().invoke(cli.main, ["--key-file", key_file, "--workers", "0"])
	assert result.exit_code == 2


def test_unknown_endpoint_is_rejected(key_file):
	result = CliRunner().invoke(cli.main, ["--key-file", key_file, "--endpoint", "news"])
	assert result.exit_code == 2


def test_offline_runs_against_bundled_fake(tmp_path):
	result = CliRunner().invoke(cli.main, [
		"--offline", "--key-file", str(tmp_path / "unused.key"),
		"--endpoint", "profile", "--items", "20", "--workers", "2", "--report-every", "10",
	])
	assert result.exit_code == 0, result.output
	assert "20/20 succeed." in result.output
