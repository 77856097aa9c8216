"""
Environment helpers for the VLESS control plane.
Values are trimmed; unparsable numbers and booleans fall back to defaults.
"""
import os
from typing import Optional

from dotenv import load_dotenv

_TRUE_VALUES = ("1", "true", "yes", "y", "on")
_FALSE_VALUES = ("0", "false", "no", "n", "off")

def load_env_file(env_file_path: Optional[str] = None) -> None:
    """
    Load environment variables from a .env file.

    Variables already present in the process environment win.

    Args:
        env_file_path (str): Path to the environment file.
                           If None, looks for '.env' in project root.
    """
    if env_file_path is None:
        project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
        env_file_path = os.path.join(project_root, '.env')

    if os.path.exists(env_file_path):
        load_dotenv(env_file_path, override=False)

def get_config_value(key: str, default: str = "") -> str:
    """
    Get a trimmed configuration value with fallback to default

    Args:
        key (str): Environment variable name
        default: Default value if not found or blank

    Returns:
        Configuration value
    """
    value = os.environ.get(key, "").strip()
    return value or default

def get_int_config(key: str, default: int = 0) -> int:
    """
    Get an integer configuration value

    Args:
        key (str): Environment variable name
        default (int): Default value if not found or invalid

    Returns:
        int: Configuration value
    """
    raw = os.environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except (ValueError, TypeError):
        return default

def get_float_config(key: str, default: float = 0.0) -> float:
    raw = os.environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except (ValueError, TypeError):
        return default

def get_bool_config(key: str, default: bool = False) -> bool:
    """Get a boolean configuration value (1/true/yes/y/on, 0/false/no/n/off)."""
    raw = os.environ.get(key, "").strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    return default

def first_non_empty(*values: str) -> str:
    for value in values:
        trimmed = (value or "").strip()
        if trimmed:
            return trimmed
    return ""
