"""
Sylvia Memory Core

Memory context selection and intelligence extraction for the Sylvia agent.

Components:
- memory/: memory store, tag score index, context selector
- intelligence/: extraction engine, AI providers, application router, audit log
- stores/: destination stores (clients, brand, performers, journal, knowledge, interactions)
- events.py: change notification bus consumed by external pages

Usage:
    from sylvia.config import load_config
    from sylvia.memory import MemoryStore, TagScoreIndex, ContextSelector

    config = load_config()
    index = TagScoreIndex(config.database_file)
    store = MemoryStore(config.database_file, tag_index=index)
"""

from pathlib import Path

__version__ = "0.4.0"

# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
PACKAGE_ROOT = Path(__file__).parent
DATA_DIR = PROJECT_ROOT / "data"
ARGS_DIR = PROJECT_ROOT / "args"
CONFIG_PATH = ARGS_DIR / "sylvia.yaml"

__all__ = [
    "ARGS_DIR",
    "CONFIG_PATH",
    "DATA_DIR",
    "PACKAGE_ROOT",
    "PROJECT_ROOT",
    "__version__",
]
