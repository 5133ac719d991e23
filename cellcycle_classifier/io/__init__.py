"""I/O utilities for cellcycle-classifier.

Provides run log files and YAML run summaries.
"""

from .logging import attach_file_log, timestamped_path, write_run_summary

__all__ = [
    "attach_file_log",
    "timestamped_path",
    "write_run_summary",
]
