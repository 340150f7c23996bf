from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field


@dataclass
class RuntimeStats:
    started_at: float = field(default_factory=time.time)
    commands_handled: int = 0
    timeouts_applied: int = 0
    timeouts_failed: int = 0
    records_failed: int = 0
    admin_unauthorized: int = 0

    def uptime_seconds(self) -> int:
        return int(time.time() - self.started_at)

    def to_dict(self) -> dict[str, int]:
        data = asdict(self)
        data.pop("started_at")
        data["uptime_seconds"] = self.uptime_seconds()
        return data
