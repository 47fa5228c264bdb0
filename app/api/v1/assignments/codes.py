"""Generated identifiers for matrices and for assignments submitted without a code."""

import time
from typing import Iterable, Set


def now_millis() -> int:
    return time.time_ns() // 1_000_000


def generate_matrix_id(base: int) -> str:
    return f"ASGM-{base}"


class CodeGenerator:
    """
    Deterministic assignment codes: ASG-{base + n}, n counting up from 0.
    Codes in `taken` (compared case-insensitively) are skipped.
    """

    def __init__(self, base: int, taken: Iterable[str] = (), prefix: str = "ASG") -> None:
        self.base = base
        self.prefix = prefix
        self.counter = 0
        self._taken: Set[str] = {c.upper() for c in taken if c}

    def next_code(self) -> str:
        while True:
            code = f"{self.prefix}-{self.base + self.counter}"
            self.counter += 1
            if code.upper() not in self._taken:
                self._taken.add(code.upper())
                return code
