from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Literal

CountStrategy = Literal["wrapped", "in_memory"]


class Metrics(ABC):
    @abstractmethod
    def observe_stage_duration_ms(self, *, stage: str, dt_ms: float) -> None: ...

    @abstractmethod
    def inc_stage_call(self, *, stage: str, ok: bool) -> None: ...

    @abstractmethod
    def inc_stage_error(self, *, stage: str, error_code: str) -> None: ...

    @abstractmethod
    def inc_count_strategy(self, *, strategy: CountStrategy) -> None: ...
