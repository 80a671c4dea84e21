import asyncio
import json
import logging

import pytest
from click.testing import CliRunner

from gasworks.command import gasworks_neurone
from gasworks.common.logger import setup_logging
from gasworks.neurone.config import NodeConfig
from gasworks.neurone.lighting import NullLightingSink
from gasworks.util.file_utils import from_json_or_yaml


def quiet_logging(**kwargs):
    return logging.getLogger("gasworks.test")


def fake_runner(calls):
    async def _run(config, timings=None, camera=True, logger=None):
        calls.append((config, camera))
    return _run


def test_command_runs_with_parsed_configuration(monkeypatch, testdata):
    calls = []
    monkeypatch.setattr(gasworks_neurone, "run_neurone", fake_runner(calls))
    monkeypatch.setattr(gasworks_neurone, "setup_logging", quiet_logging)

    result = CliRunner().invoke(gasworks_neurone.run, [str(testdata / "test-config.json"), "--no-camera"])

    assert result.exit_code == 0, result.output
    config, camera = calls[0]
    assert config.listen_address == "10.1.1.1:8080"
    assert camera is False


def test_command_falls_back_to_defaults(monkeypatch, tmp_path):
    calls = []
    monkeypatch.setattr(gasworks_neurone, "run_neurone", fake_runner(calls))
    monkeypatch.setattr(gasworks_neurone, "setup_logging", quiet_logging)

    result = CliRunner().invoke(gasworks_neurone.run, [str(tmp_path / "missing.json")])

    assert result.exit_code == 0, result.output
    config, camera = calls[0]
    assert config == NodeConfig()
    assert camera is True


def test_setup_logging_verbose_and_file(tmp_path):
    log_file = tmp_path / "neurone.log"
    setup_logging(log_file_path=log_file, verbose=True)

    logging.getLogger("gasworks.test").debug("hello neurone")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert logging.getLogger().level == logging.DEBUG
    assert "hello neurone" in log_file.read_text()


def test_setup_logging_from_file(tmp_path):
    config_path = tmp_path / "logging.json"
    config_path.write_text(json.dumps({
        "version": 1,
        "disable_existing_loggers": False,
        "root": {"level": "WARNING", "handlers": []},
    }))

    setup_logging(config_file_path=config_path)

    assert logging.getLogger().level == logging.WARNING


def test_from_json_or_yaml(tmp_path):
    yaml_path = tmp_path / "config.yml"
    yaml_path.write_text("masterNode: true\n")
    json_path = tmp_path / "config.json"
    json_path.write_text('{"masterNode": false}')

    assert from_json_or_yaml(yaml_path) == {"masterNode": True}
    assert from_json_or_yaml(json_path) == {"masterNode": False}


@pytest.mark.asyncio
async def test_bad_listen_address_leaves_axon_running(monkeypatch, caplog):
    async def no_lights():
        return NullLightingSink()

    monkeypatch.setattr(gasworks_neurone, "open_lighting_sink", no_lights)

    with caplog.at_level(logging.ERROR, logger="gasworks.command.gasworks_neurone"):
        task = asyncio.create_task(gasworks_neurone.run_neurone(NodeConfig(listen_address="localhost"), camera=False))
        await asyncio.sleep(0.2)

    assert not task.done()
    assert "Web dendrite stopped" in caplog.text

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_web_dendrite_exit_is_contained(monkeypatch, caplog):
    async def busy_port(axon, listen_address):
        raise SystemExit(1)

    monkeypatch.setattr(gasworks_neurone, "serve_web_dendrite", busy_port)

    with caplog.at_level(logging.ERROR, logger="gasworks.command.gasworks_neurone"):
        await gasworks_neurone.run_web_dendrite(object(), ":8080")

    assert "listen_address=':8080'" in caplog.text
