"""Logging setup shared by entry points, and key=value line helpers."""

import logging
import os

import pytest

import meshgate.app.gateway as gateway_module
from meshgate.core.logging_utils import ColoredFormatter, log_install_step, setup_logging


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    httpx_level = logging.getLogger("httpx").level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("httpx").setLevel(httpx_level)


class TestSetupLogging:
    def test_colored_handler_on_root(self, restore_root_logging):
        setup_logging()
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, ColoredFormatter)
        assert root.level == logging.INFO
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_debug_level(self, restore_root_logging):
        setup_logging(debug=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_console_entry_uses_shared_setup(self, restore_root_logging, monkeypatch, tmp_path):
        seen = []
        monkeypatch.setattr(gateway_module, "run_gateway", seen.append)
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr("sys.argv", ["meshgate", "my.yaml", "--debug"])
        gateway_module.main()
        root = logging.getLogger()
        assert isinstance(root.handlers[0].formatter, ColoredFormatter)
        assert root.level == logging.DEBUG
        assert seen == [os.path.abspath("my.yaml")]


def test_install_step_line(caplog):
    with caplog.at_level(logging.INFO, logger="meshgate.core.logging_utils"):
        log_install_step("mesh", "download", trace_id="t1", url="https://x")
    assert caplog.messages == ["install_step dependency=mesh step=download trace_id=t1 url=https://x"]
