import time
from typing import List, Tuple

from prepwise.models.setup import Speaker, TranscriptEntry

class TranscriptLog:
    """Append-only record of the spoken exchange"""

    def __init__(self):
        self._entries: List[TranscriptEntry] = []

    def append(self, speaker: Speaker, text: str) -> TranscriptEntry:
        entry = TranscriptEntry(speaker=speaker, text=text, timestamp=int(time.time() * 1000))
        self._entries.append(entry)
        return entry

    @property
    def entries(self) -> Tuple[TranscriptEntry, ...]:
        return tuple(self._entries)

    def recent(self, n: int = 4) -> List[TranscriptEntry]:
        return self._entries[-n:] if n > 0 else []

    def __len__(self) -> int:
        return len(self._entries)
