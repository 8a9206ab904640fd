from __future__ import annotations

from pathlib import Path
from typing import List, Protocol

from domain.models import ActivityRow


class ActivityRowSource(Protocol):
    def parse(self, path: Path) -> List[ActivityRow]: ...
