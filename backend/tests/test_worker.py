"""
Worker tests.

Celery is never started; the module is imported and its setup hook is called
with a stand-in sender.
"""
import importlib
import logging
from unittest.mock import MagicMock

import neowatch.worker as worker


class TestWorkerSetup:
    """Test what the worker configures at import and on startup."""

    def test_logging_configured_on_import(self, monkeypatch):
        basic_config = MagicMock()
        monkeypatch.setattr(logging, "basicConfig", basic_config)

        importlib.reload(worker)

        basic_config.assert_called_once()
        kwargs = basic_config.call_args.kwargs
        assert kwargs["level"] == logging.INFO
        assert kwargs["format"] == "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    def test_periodic_tasks_registered(self):
        sender = MagicMock()

        worker.setup_periodic_tasks(sender)

        names = [c.kwargs["name"] for c in sender.add_periodic_task.call_args_list]
        assert names == ["Check alerts every hour", "Refresh NeoWs feed every 6 hours"]
        intervals = [c.args[0] for c in sender.add_periodic_task.call_args_list]
        assert intervals == [
            worker.settings.ALERT_CHECK_INTERVAL_MINUTES * 60.0,
            worker.settings.CACHE_REFRESH_INTERVAL_HOURS * 3600.0,
        ]
