"""High score persistence: one integer in a small JSON file"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

HIGH_SCORE_KEY = "snakeHighScore"
DEFAULT_PATH = Path.home() / ".snake_game" / "high_score.json"


def default_path() -> Path:
    override = os.environ.get("SNAKE_HIGH_SCORE_FILE")
    return Path(override).expanduser() if override else DEFAULT_PATH


class HighScoreStore:
    """Reads and writes the best score under a fixed key"""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else default_path()

    def load(self) -> int:
        """Stored high score, or 0 if there is none or it can't be read"""
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return 0
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read high score from %s: %s", self.path, exc)
            return 0

        try:
            value = json.loads(text)[HIGH_SCORE_KEY]
        except (ValueError, TypeError, KeyError) as exc:
            logger.warning("Ignoring corrupt high score file %s: %r", self.path, exc)
            return 0

        # bool is an int subclass
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            logger.warning("Ignoring invalid high score %r in %s", value, self.path)
            return 0
        return value

    def save(self, value: int):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps({HIGH_SCORE_KEY: value}), encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not save high score to %s: %s", self.path, exc)
        else:
            logger.debug("High score %d saved to %s", value, self.path)
