import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest

from snaplog import default
from snaplog.config import LoggerConfig
from snaplog.events import EventKind
from snaplog.pipeline import CapturePipeline


class TestDefaultPipeline:
    """Test suite for the process-wide default pipeline."""

    def setup_method(self):
        self.records = []
        self.pipeline = CapturePipeline(LoggerConfig(extensions=[self.records.append]))
        default.set_default_pipeline(self.pipeline)

    def teardown_method(self):
        default.set_default_pipeline(None)

    def test_lazy_default(self):
        default.set_default_pipeline(None)
        first = default.get_default_pipeline()
        assert isinstance(first, CapturePipeline)
        assert default.get_default_pipeline() is first

    @pytest.mark.parametrize("function,kind", [
        (default.log_error, EventKind.ERROR),
        (default.log_warning, EventKind.WARNING),
        (default.log_info, EventKind.INFO),
        (default.log_fatal, EventKind.FATAL),
        (default.log_perf_issue, EventKind.PERF_ISSUE),
        (default.log_invalid_code_path, EventKind.INVALID_CODE_PATH),
    ])
    def test_shortcuts(self, function, kind):
        record = function("Shard {} offline", 3)
        assert record.kind is kind
        assert record.message == "Shard 3 offline"
        assert self.records == [record]

    def test_log_exception(self):
        try:
            raise TimeoutError("upstream slow")
        except TimeoutError as e:
            record = default.log_exception(e, enrich=lambda r: r.set_user_data("Retry", 2))
        assert record.kind is EventKind.EXCEPTION
        assert record.get_user_data("Retry") == 2

    def test_shortcut_signature_skips_default_module(self):
        record = default.log_error("x")
        assert "test_shortcut_signature_skips_default_module" in record.get("CallStack", "0")
