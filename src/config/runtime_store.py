"""Persistent runtime overrides for the analysis oracle provider.

The state is a flat JSON object with the keys of DEFAULT_STATE. Unknown
keys are dropped on load and save.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

RUNTIME_FILE = Path(__file__).parent.parent.parent / "config" / "oracle_runtime.json"

DEFAULT_STATE: Dict[str, str] = {
    "provider": "openai_compatible",
    "base_url": "http://127.0.0.1:8000/v1",
    "api_key": "",
    "model_name": "qwen2.5:32b",
}


def load_runtime_state(path: Optional[Path] = None) -> Dict[str, str]:
    """Load overrides from disk on top of the defaults."""
    path = Path(path or RUNTIME_FILE)
    state = dict(DEFAULT_STATE)
    if not path.exists():
        return state

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Ignoring unreadable runtime file {path}: {e}")
        return state

    if not isinstance(data, dict):
        logger.warning(f"Ignoring runtime file {path}: expected a JSON object")
        return state

    state.update({k: str(v) for k, v in data.items() if k in DEFAULT_STATE and v is not None})
    return state


def save_runtime_state(state: Dict[str, str], path: Optional[Path] = None) -> None:
    """Persist overrides, replacing the file in one step."""
    path = Path(path or RUNTIME_FILE)
    path.parent.mkdir(parents=True, exist_ok=True)

    merged = dict(DEFAULT_STATE)
    merged.update({k: v for k, v in state.items() if k in DEFAULT_STATE})

    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(merged, indent=2), encoding="utf-8")
    tmp.replace(path)


def clear_runtime_state(path: Optional[Path] = None) -> None:
    """Remove saved overrides so environment and defaults apply again."""
    Path(path or RUNTIME_FILE).unlink(missing_ok=True)
