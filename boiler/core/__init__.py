"""Core orchestration for boiler: the transcode, remux, audio selection and cleanup commands."""

from .main import main, process_file, run_batch

__all__ = ["main", "process_file", "run_batch"]
