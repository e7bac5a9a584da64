from __future__ import annotations

from adapters.metrics.base import CountStrategy, Metrics
from sqlboard.metrics import (
    count_strategy_total,
    stage_calls_total,
    stage_duration_ms,
    stage_errors_total,
)


class PrometheusMetrics(Metrics):
    def observe_stage_duration_ms(self, *, stage: str, dt_ms: float) -> None:
        stage_duration_ms.labels(stage=stage).observe(float(dt_ms))

    def inc_stage_call(self, *, stage: str, ok: bool) -> None:
        stage_calls_total.labels(stage=stage, ok=("true" if ok else "false")).inc()

    def inc_stage_error(self, *, stage: str, error_code: str) -> None:
        stage_errors_total.labels(stage=stage, error_code=str(error_code)).inc()

    def inc_count_strategy(self, *, strategy: CountStrategy) -> None:
        count_strategy_total.labels(strategy=strategy).inc()
