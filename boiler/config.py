"""Configuration management for boiler."""

import os
from pathlib import Path
from typing import Optional, Dict, Any

DEFAULT_ENCODER = "hevc_videotoolbox"
DEFAULT_MAX_DEPTH = 2


def load_env_file(env_path: Optional[Path] = None) -> Dict[str, str]:
    """Load environment variables from .env file."""
    if env_path is None:
        # Look for .env in current directory, then in package directory
        candidates = [
            Path.cwd() / ".env",
            Path(__file__).parent.parent / ".env",
        ]

        for candidate in candidates:
            if candidate.exists():
                env_path = candidate
                break

    env_vars = {}

    if env_path and env_path.exists():
        with open(env_path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#'):
                    if '=' in line:
                        key, value = line.split('=', 1)
                        env_vars[key.strip()] = value.strip()

    return env_vars


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    try:
        number = float(value)
    except ValueError:
        number = 0.0
    if number <= 0:
        print(f"[WARN] Ignoring invalid target bitrate: {value}")
        return None
    return number


def get_config(env_path: Optional[Path] = None) -> Dict[str, Any]:
    """Get configuration from environment variables and .env file."""
    env_vars = load_env_file(env_path)

    max_depth = env_vars.get('max_depth', os.getenv('BOILER_MAX_DEPTH', str(DEFAULT_MAX_DEPTH)))
    config = {
        'target_bitrate_mbps': _optional_float(
            env_vars.get('target_bitrate_mbps', os.getenv('BOILER_TARGET_BITRATE'))),
        'max_depth': int(max_depth) if max_depth.isdigit() else DEFAULT_MAX_DEPTH,
        'encoder': env_vars.get('encoder', os.getenv('BOILER_ENCODER', DEFAULT_ENCODER)),
        'debug': env_vars.get('debug', os.getenv('DEBUG', 'false')).lower() in ('true', '1', 'yes'),
    }

    return config
