"""
Boiler - Bitrate-targeting HEVC transcoding that searches the encoder quality knob.
"""

__version__ = "1.0.0"

from .config import get_config, load_env_file

__all__ = [
    "get_config",
    "load_env_file",
]
