"""Monitoring configuration for the flashcard game."""
from prometheus_client import Counter, Gauge, Histogram, start_http_server

# Game metrics
active_games = Gauge(
    "flashgame_active_games",
    "Number of flashcard games currently in progress",
)

games_started = Counter(
    "flashgame_games_started_total",
    "Total number of flashcard games started",
    ["selection"],
)

games_completed = Counter(
    "flashgame_games_completed_total",
    "Total number of games finished with every word mastered",
)

games_ended_early = Counter(
    "flashgame_games_ended_early_total",
    "Total number of games ended by the player before completion",
)

answers = Counter(
    "flashgame_answers_total",
    "Total number of answers given",
    ["result"],
)

words_mastered = Counter(
    "flashgame_words_mastered_total",
    "Total number of words mastered within game sessions",
)

session_duration = Histogram(
    "flashgame_session_duration_seconds",
    "Duration of game sessions in seconds",
    buckets=[60, 300, 600, 1800, 3600],  # 1min, 5min, 10min, 30min, 1hour
)

# Catalog metrics
words_added = Counter(
    "flashgame_words_added_total",
    "Total number of words added to the vocabulary catalog",
)

words_deleted = Counter(
    "flashgame_words_deleted_total",
    "Total number of words removed from the vocabulary catalog",
)

# Error metrics
error_count = Counter(
    "flashgame_errors_total",
    "Total number of errors encountered",
    ["error_type"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
