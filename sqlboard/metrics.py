from prometheus_client import Counter, Histogram
from sqlboard.prom import REGISTRY


# -----------------------------------------------------------------------------
#  Stage-level metrics
# -----------------------------------------------------------------------------
stage_duration_ms = Histogram(
    "stage_duration_ms",
    "Duration (ms) of each core stage",
    ["stage"],  # executor|introspect
    buckets=(1, 2, 5, 10, 20, 50, 100, 200, 500, 1000, 2000, 5000, 10000),
    registry=REGISTRY,
)

stage_calls_total = Counter(
    "stage_calls_total",
    "Count of stage calls labeled by stage and ok",
    ["stage", "ok"],
    registry=REGISTRY,
)

stage_errors_total = Counter(
    "stage_errors_total",
    "Count of stage errors labeled by stage and error_code",
    ["stage", "error_code"],
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
#  SQL validator metrics
# -----------------------------------------------------------------------------
sql_blocks_total = Counter(
    "sql_blocks_total",
    "Count of SQL queries blocked by the validator",
    ["reason"],  # see the priming loop below
    registry=REGISTRY,
)

sql_checks_total = Counter(
    "sql_checks_total",
    "Total SQL queries checked by the validator",
    ["ok"],  # "true" or "false"
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
#  Chart-function validator metrics
# -----------------------------------------------------------------------------
chart_blocks_total = Counter(
    "chart_blocks_total",
    "Count of chart functions rejected by the validator",
    ["reason"],  # empty|syntax_error|bad_signature|while|infinite_for|do_while
    registry=REGISTRY,
)

chart_checks_total = Counter(
    "chart_checks_total",
    "Total chart functions checked by the validator",
    ["ok"],
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
#  Executor metrics
# -----------------------------------------------------------------------------
count_strategy_total = Counter(
    "count_strategy_total",
    "How totalRows was obtained for paginated queries",
    ["strategy"],  # wrapped | in_memory
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
#  Prime all counters with zero to ensure dashboards always have data
# -----------------------------------------------------------------------------
for reason in (
    "empty_sql",
    "too_long",
    "semicolon",
    "non_select",
    "forbidden_clause",
    "forbidden_ast",
):
    sql_blocks_total.labels(reason=reason).inc(0)

for reason in (
    "empty",
    "syntax_error",
    "bad_signature",
    "while",
    "infinite_for",
    "do_while",
):
    chart_blocks_total.labels(reason=reason).inc(0)

for ok in ("true", "false"):
    sql_checks_total.labels(ok=ok).inc(0)
    chart_checks_total.labels(ok=ok).inc(0)

for strategy in ("wrapped", "in_memory"):
    count_strategy_total.labels(strategy=strategy).inc(0)

for stage in ("executor", "introspect"):
    for ok in ("true", "false"):
        stage_calls_total.labels(stage=stage, ok=ok).inc(0)
