"""
Persisted UI state: recent searches and the account -> avatar URL map.

All file I/O here is best-effort. Failures are logged and never raised.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from dotatui.config import paths
from dotatui.workflow.state import SearchEntry

logger = logging.getLogger(__name__)


class Persistence:
    """Reads and writes recent.jsonl and avatar_map.json."""

    def __init__(self, recent_path: Optional[Path] = None,
                 avatar_map_path: Optional[Path] = None):
        self.recent_path = Path(recent_path) if recent_path else paths.recent_file()
        self.avatar_map_path = Path(avatar_map_path) if avatar_map_path else paths.avatar_map_file()

    def load_recent(self, max_entries: int = 5) -> List[SearchEntry]:
        """
        Read recent searches, newest first, one entry per account id.

        Unparseable lines, including ones that are not valid UTF-8, are skipped.
        """
        try:
            with open(self.recent_path, 'r', encoding='utf-8', errors='replace') as f:
                lines = f.readlines()
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read recent searches: {e}")
            return []

        seen = set()
        recent = []
        for line in reversed(lines):
            entry = self._parse_recent_line(line)
            if entry is None or entry.account_id in seen:
                continue
            seen.add(entry.account_id)
            recent.append(entry)
            if len(recent) >= max_entries:
                break
        return recent

    @staticmethod
    def _parse_recent_line(line: str) -> Optional[SearchEntry]:
        line = line.strip()
        if not line:
            return None
        try:
            data = json.loads(line)
            account_id = data['account_id']
            personaname = data['personaname']
        except (ValueError, KeyError, TypeError):
            return None
        if isinstance(account_id, bool) or not isinstance(account_id, int):
            return None
        if not isinstance(personaname, str):
            return None
        avatar_url = data.get('avatar_url')
        return SearchEntry(account_id, personaname,
                           avatar_url if isinstance(avatar_url, str) else None)

    def append_recent(self, entry: SearchEntry) -> None:
        try:
            self.recent_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.recent_path, 'a', encoding='utf-8') as f:
                f.write(json.dumps(entry.to_dict()) + "\n")
        except OSError as e:
            logger.warning(f"Could not append recent search: {e}")

    def load_avatar_map(self) -> Dict[int, str]:
        """Read the avatar map; keys that are not account ids are dropped."""
        try:
            with open(self.avatar_map_path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.debug(f"Could not read avatar map: {e}")
            return {}

        if not isinstance(raw, dict):
            return {}

        avatars = {}
        for key, value in raw.items():
            try:
                account_id = int(key)
            except ValueError:
                continue
            if isinstance(value, str):
                avatars[account_id] = value
        return avatars

    def save_avatar_map(self, avatars: Dict[int, str]) -> None:
        data = {str(account_id): url for account_id, url in avatars.items()}
        try:
            self.avatar_map_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.avatar_map_path, 'w', encoding='utf-8') as f:
                json.dump(data, f)
        except OSError as e:
            logger.warning(f"Could not save avatar map: {e}")
