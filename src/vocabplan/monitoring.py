"""Monitoring configuration for the study engine."""
from prometheus_client import Counter, start_http_server

# Learning metrics
words_learned = Counter(
    "vocabplan_words_learned_total",
    "Total number of words that left the 'new' status",
    ["user_id"],
)

study_answers = Counter(
    "vocabplan_study_answers_total",
    "Total number of answers recorded",
    ["kind", "outcome"],
)

# Plan metrics
plan_resets = Counter(
    "vocabplan_plan_resets_total",
    "Total number of plan resets (progress wiped)",
    ["user_id"],
)

day_rollovers = Counter(
    "vocabplan_day_rollovers_total",
    "Total number of daily counter rollovers",
)

# Ranking metrics
score_syncs = Counter(
    "vocabplan_score_syncs_total",
    "Total number of score sync attempts",
    ["result"],
)

leaderboard_fallbacks = Counter(
    "vocabplan_leaderboard_fallbacks_total",
    "Total number of times the local leaderboard was used",
)

# Persistence metrics
stale_writes = Counter(
    "vocabplan_stale_writes_total",
    "Total number of persisted writes rejected as stale",
    ["key"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
