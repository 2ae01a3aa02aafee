"""Settings and input loaders."""

from .loader import InputLoader, load_input_json, load_workbook_input, parse_input
from .settings import EngineSettings

__all__ = [
    "EngineSettings",
    "InputLoader",
    "load_input_json",
    "load_workbook_input",
    "parse_input",
]
