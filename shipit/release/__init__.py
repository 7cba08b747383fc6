"""Release identity, the per-host lock, and retention."""

import re
from dataclasses import dataclass
from datetime import datetime

RELEASE_NAME_FORMAT = "%Y%m%d-%H%M%S"
_RELEASE_NAME_RE = re.compile(r"^\d{8}-\d{6}$")


def is_release_name(name) -> bool:
    """True if name looks like a generated release name (YYYYMMDD-HHMMSS)."""
    return bool(name) and _RELEASE_NAME_RE.match(name) is not None


@dataclass(frozen=True)
class Release:
    """One timestamp-named release; names sort chronologically."""

    name: str

    @classmethod
    def new(cls, now: datetime | None = None) -> "Release":
        now = now or datetime.now()
        return cls(name=now.strftime(RELEASE_NAME_FORMAT))

    def __str__(self):
        return self.name
