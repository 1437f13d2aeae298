"""
Process-wide default pipeline and module-level capture shortcuts.

The default pipeline is created lazily with LoggerConfig() the first time
it is needed. Replace it at startup to apply your own configuration:

    set_default_pipeline(CapturePipeline(get_preset("production")))
    log_error("Cache miss storm on {}", region)
"""

import logging
import threading
from typing import Any, Optional

from snaplog.events import CategorizedRecord
from snaplog.pipeline import CapturePipeline, Enrich

logger = logging.getLogger(__name__)

_default_pipeline: Optional[CapturePipeline] = None
_lock = threading.Lock()


def get_default_pipeline() -> CapturePipeline:
    global _default_pipeline
    if _default_pipeline is None:
        with _lock:
            if _default_pipeline is None:
                logger.debug("Creating default capture pipeline")
                _default_pipeline = CapturePipeline()
    return _default_pipeline


def set_default_pipeline(pipeline: Optional[CapturePipeline]) -> None:
    """Replace the default pipeline; None resets it to a fresh default."""
    global _default_pipeline
    with _lock:
        _default_pipeline = pipeline


def log_error(message: str, *args: Any, enrich: Optional[Enrich] = None) -> Optional[CategorizedRecord]:
    return get_default_pipeline().error(message, *args, enrich=enrich)


def log_warning(message: str, *args: Any, enrich: Optional[Enrich] = None) -> Optional[CategorizedRecord]:
    return get_default_pipeline().warning(message, *args, enrich=enrich)


def log_info(message: str, *args: Any, enrich: Optional[Enrich] = None) -> Optional[CategorizedRecord]:
    return get_default_pipeline().info(message, *args, enrich=enrich)


def log_fatal(message: str, *args: Any, enrich: Optional[Enrich] = None) -> Optional[CategorizedRecord]:
    return get_default_pipeline().fatal(message, *args, enrich=enrich)


def log_exception(fault: BaseException, *args: Any, enrich: Optional[Enrich] = None) -> Optional[CategorizedRecord]:
    return get_default_pipeline().exception(fault, *args, enrich=enrich)


def log_perf_issue(message: str, *args: Any, enrich: Optional[Enrich] = None) -> Optional[CategorizedRecord]:
    return get_default_pipeline().perf_issue(message, *args, enrich=enrich)


def log_invalid_code_path(message: str, *args: Any, enrich: Optional[Enrich] = None) -> Optional[CategorizedRecord]:
    return get_default_pipeline().invalid_code_path(message, *args, enrich=enrich)
