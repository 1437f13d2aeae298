"""Runtime identity facts: thread, process and machine."""

import os
import platform
import sys
import threading
from datetime import datetime

import psutil

from snaplog.events import CategorizedRecord


def append_thread_info(record: CategorizedRecord) -> None:
    thread = threading.current_thread()
    category = record.get_or_create_category("Thread")
    category["ThreadId"] = threading.get_ident()
    category["NativeThreadId"] = threading.get_native_id()
    category["ThreadName"] = thread.name
    category["IsDaemon"] = thread.daemon


def append_process_info(record: CategorizedRecord) -> None:
    process = psutil.Process()
    category = record.get_or_create_category("Process")
    category["ProcessId"] = process.pid
    category["ProcessName"] = process.name()
    category["Executable"] = sys.executable
    category["CurrentDirectory"] = os.getcwd()

    memory = process.memory_info()
    category["WorkingSet"] = memory.rss
    # Only reported on Windows
    peak = getattr(memory, "peak_wset", None)
    if peak is not None:
        category["PeakWorkingSet"] = peak

    category["StartTime"] = datetime.fromtimestamp(process.create_time())
    category["ThreadCount"] = process.num_threads()


def append_computer_info(record: CategorizedRecord) -> None:
    category = record.get_or_create_category("Computer")
    category["Name"] = platform.node()
    category["OSVersion"] = platform.platform()
    category["Version"] = platform.python_version()
    category["Implementation"] = platform.python_implementation()
    category["CpuCount"] = os.cpu_count()
