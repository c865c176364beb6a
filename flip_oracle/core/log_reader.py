from collections import deque
from pathlib import Path
from typing import List


def get_log_lines(log_file: Path, lines: int = 100, level: str = "all") -> List[str]:
    """
    Return the last `lines` lines of the oracle log, optionally filtered by level.

    Only the tail is kept in memory, so large rotated logs are fine.
    """
    if not log_file.exists():
        return ["Log file not found. Enable file logging in config: logging.log_to_file = true"]

    level_upper = level.upper()
    tail = deque(maxlen=max(lines, 0))
    try:
        with open(log_file, "r", encoding="utf-8", errors="ignore") as f:
            for line in f:
                if level_upper != "ALL" and f"| {level_upper}" not in line:
                    continue
                tail.append(line.strip())
    except OSError as e:
        return [f"Error reading logs: {e}"]

    return list(tail)
