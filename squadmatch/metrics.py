"""
Prometheus metric definitions
"""

from prometheus_client import Counter, Gauge, Histogram, Info


class TeamBuild:
    FORMED = "formed"
    SINGLE = "single"
    REQUEUED = "requeued"
    EMPTY = "empty"


class MatchBuild:
    FINALIZED = "finalized"
    REQUEUED = "requeued"
    EMPTY = "empty"


class ConfigRefresh:
    APPLIED = "applied"
    INVALID = "invalid"
    ERROR = "error"


info = Info("build", "Information collected on server start")

config_refreshes = Counter(
    "squadmatch_config_refreshes_total",
    "Outcomes of periodic configuration reloads",
    ["outcome"],
)

# ==========
# Matchmaker
# ==========
user_queue_size = Gauge(
    "squadmatch_user_queue_size",
    "Number of participants waiting for a team",
)

team_pool_size = Gauge(
    "squadmatch_team_pool_size",
    "Number of team buckets in the team pool",
    ["status"],
)

team_queue_size = Gauge(
    "squadmatch_team_queue_size",
    "Number of finalized teams waiting for a match",
)

match_pool_size = Gauge(
    "squadmatch_match_pool_size",
    "Number of matches in the match pool",
    ["status"],
)

team_builds = Counter(
    "squadmatch_team_build_cycles_total",
    "Outcomes of team build cycles",
    ["outcome"],
)

teams_formed = Counter(
    "squadmatch_teams_formed_total",
    "Teams finalized by the team builder",
    ["team_size"],
)

match_builds = Counter(
    "squadmatch_match_build_cycles_total",
    "Outcomes of match build cycles",
    ["outcome", "team_size"],
)

corrupted_records = Counter(
    "squadmatch_corrupted_records_total",
    "Participants enqueued with a negative win or loss count",
)

search_tolerance = Histogram(
    "squadmatch_search_tolerance",
    "Tolerance at which a widening search succeeded",
    ["context"],
    buckets=[1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000],
)

cycle_duration = Histogram(
    "squadmatch_cycle_duration_seconds",
    "Time spent inside one matchmaking cycle",
    ["cycle"],
    buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1],
)
