import logging
from pathlib import Path

import pytest
import respx

from conftest import ACCOUNT_ID, TEST_BASE_URL, hero_stats_payload, matches_payload, player_payload
from dotatui import __version__
from dotatui.api.client import REQUEST_LOGGER_NAME
from dotatui.cli import _setup_request_log, create_parser, main
from dotatui.config import paths
from dotatui.media.image_cache import DiskImageCache


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


@pytest.mark.unit
def test_parser_defaults():
    args = create_parser().parse_args([])

    assert args.config is None
    assert args.account is None
    assert not args.headless
    assert not args.no_images
    assert not args.clear_cache


@pytest.mark.unit
def test_version_flag(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--version"])

    assert exc_info.value.code == 0
    assert f"dotatui {__version__}" in capsys.readouterr().out


@pytest.mark.unit
def test_invalid_account_exits_with_error(make_config, capsys):
    code = main(["--config", str(make_config()), "--headless", "--account", "not-a-number"])

    assert code == 1
    assert "SteamID must be numeric" in capsys.readouterr().err


@pytest.mark.unit
def test_headless_requires_account(make_config, capsys):
    assert main(["--config", str(make_config()), "--headless"]) == 2
    assert "--headless requires --account" in capsys.readouterr().err


@pytest.mark.unit
def test_bad_config_exits_with_error(tmp_path: Path, capsys):
    path = tmp_path / "config.yaml"
    path.write_text("api:\n  rate_limit_per_minute: 0\n")

    assert main(["--config", str(path), "--headless", "--account", "1"]) == 1
    assert "api.rate_limit_per_minute" in capsys.readouterr().err


@pytest.mark.unit
def test_clear_cache_removes_images(make_config, capsys):
    disk = DiskImageCache(paths.image_cache_dir())
    disk.write("https://cdn.test/a.png", b"png")

    assert main(["--config", str(make_config()), "--headless", "--clear-cache"]) == 2
    assert "Removed 1 cached images" in capsys.readouterr().out
    assert disk.read("https://cdn.test/a.png") is None


@pytest.mark.integration
def test_headless_prints_player_report(make_config, capsys):
    with respx.mock(assert_all_called=True) as mock:
        mock.get(f"{TEST_BASE_URL}/heroStats").respond(200, json=hero_stats_payload())
        mock.get(f"{TEST_BASE_URL}/players/{ACCOUNT_ID}").respond(200, json=player_payload())
        mock.get(f"{TEST_BASE_URL}/players/{ACCOUNT_ID}/recentMatches").respond(200, json=matches_payload())

        code = main(["--config", str(make_config()), "--headless", "--account", "76561198095930120"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Miracle" in out
    assert "Invoker" in out

    log_lines = paths.request_log_file().read_text().splitlines()
    assert any(line.startswith(f"GET {TEST_BASE_URL}/heroStats status=200") for line in log_lines)


@pytest.mark.integration
def test_headless_profile_failure_exit_code(make_config, monkeypatch, capsys):
    monkeypatch.setattr("dotatui.api.client.backoff_delay", lambda attempt: 0)

    with respx.mock(assert_all_called=True) as mock:
        mock.get(f"{TEST_BASE_URL}/heroStats").respond(200, json=hero_stats_payload())
        mock.get(f"{TEST_BASE_URL}/players/{ACCOUNT_ID}").respond(500)
        mock.get(f"{TEST_BASE_URL}/players/{ACCOUNT_ID}/recentMatches").respond(200, json=matches_payload())

        code = main(["--config", str(make_config()), "--headless", "--account", str(ACCOUNT_ID)])

    assert code == 1
    assert "No player loaded" in capsys.readouterr().out


@pytest.mark.unit
def test_request_log_routing(tmp_path: Path):
    log_path = tmp_path / "logs" / "tui.log"
    _setup_request_log({"api": {"log_requests": True}}, log_path)

    request_logger = logging.getLogger(REQUEST_LOGGER_NAME)
    request_logger.info("GET https://api.test/api/heroStats status=200 elapsed_ms=5")

    assert request_logger.propagate is False
    assert log_path.read_text() == "GET https://api.test/api/heroStats status=200 elapsed_ms=5\n"


@pytest.mark.unit
def test_request_log_disabled(tmp_path: Path):
    log_path = tmp_path / "tui.log"
    _setup_request_log({"api": {"log_requests": False}}, log_path)

    logging.getLogger(REQUEST_LOGGER_NAME).info("ignored")

    assert not log_path.exists()
