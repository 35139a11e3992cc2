# Board surface — configuration
# Override via board.yaml, MKTG_BOARD_CONFIG, or environment variables.

import os
import yaml
from pathlib import Path
from dataclasses import dataclass
from typing import Optional

CONFIG_PATH = Path(__file__).parent / "board.yaml"


@dataclass
class BoardConfig:
    """Runtime configuration for the scheduling surface."""

    # Dashboard backend (source of truth)
    api_url: str = "http://localhost:3001"
    request_timeout: float = 5.0
    offline: bool = False          # in-memory adapter + sample data

    # Gestures
    long_press_ms: int = 500
    move_tolerance_px: float = 5.0

    # Board server
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "INFO"

    def apply_env(self):
        """Environment wins over the YAML file."""
        self.api_url = os.environ.get("MKTG_API_URL", self.api_url)
        if os.environ.get("MKTG_BOARD_PORT"):
            self.port = int(os.environ["MKTG_BOARD_PORT"])
        if os.environ.get("MKTG_BOARD_OFFLINE"):
            self.offline = os.environ["MKTG_BOARD_OFFLINE"].lower() in ("1", "true", "yes")
        self.api_url = self.api_url.rstrip("/")

    @classmethod
    def load(cls, path: Optional[str] = None) -> "BoardConfig":
        """Load config from YAML file, falling back to defaults."""
        path = path or os.environ.get("MKTG_BOARD_CONFIG")
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            with open(cfg_path, "r") as f:
                data = yaml.safe_load(f) or {}
            cfg = cls(**{k: v for k, v in data.items() if hasattr(cls, k)})
        else:
            cfg = cls()
        cfg.apply_env()
        return cfg
