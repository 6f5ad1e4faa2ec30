import json
import os
from typing import Any

ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "")
JWT_SECRET = os.getenv("JWT_SECRET", "")
ACCESS_TOKEN_TTL_MINUTES = int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", "15"))
DEV_MODE = os.getenv("DEV_MODE", "false").lower() == "true"

MATCH_SUGGESTION_LIMIT = int(os.getenv("MATCH_SUGGESTION_LIMIT", "20"))
MATCH_SUGGESTION_MAX_LIMIT = int(os.getenv("MATCH_SUGGESTION_MAX_LIMIT", "100"))
MATCH_CANDIDATE_POOL_CAP = int(os.getenv("MATCH_CANDIDATE_POOL_CAP", "100"))
MATCH_RECORD_VIEWS = os.getenv("MATCH_RECORD_VIEWS", "false").lower() == "true"
RESPONSE_RATE_WINDOW_DAYS = int(os.getenv("RESPONSE_RATE_WINDOW_DAYS", "30"))

BATCH_SIZE = int(os.getenv("BATCH_SIZE", "10"))
BATCH_PAUSE_SECONDS = float(os.getenv("BATCH_PAUSE_SECONDS", "0.1"))
BATCH_TOP_K = int(os.getenv("BATCH_TOP_K", "5"))
BATCH_ACTIVE_WINDOW_DAYS = int(os.getenv("BATCH_ACTIVE_WINDOW_DAYS", "7"))
INTERACTION_RETENTION_DAYS = int(os.getenv("INTERACTION_RETENTION_DAYS", "90"))

DEFAULT_MATCHING_WEIGHTS: dict[str, Any] = {
    "skill_complementarity": float(os.getenv("SKILL_COMPLEMENTARITY_W", "0.40")),
    "availability_overlap": float(os.getenv("AVAILABILITY_OVERLAP_W", "0.20")),
    "learning_style_compatibility": float(os.getenv("LEARNING_STYLE_W", "0.15")),
    "rating_history": float(os.getenv("RATING_HISTORY_W", "0.15")),
    "response_rate": float(os.getenv("RESPONSE_RATE_W", "0.10")),
}

if os.getenv("MATCHING_WEIGHTS_JSON"):
    try:
        DEFAULT_MATCHING_WEIGHTS.update(json.loads(os.getenv("MATCHING_WEIGHTS_JSON", "{}")))
    except json.JSONDecodeError:
        pass

RL_MATCH_DECISION_LIMIT = int(os.getenv("RL_MATCH_DECISION_LIMIT", "60"))
RL_MATCH_FILTER_LIMIT = int(os.getenv("RL_MATCH_FILTER_LIMIT", "30"))
RL_WINDOW_SECONDS = int(os.getenv("RL_WINDOW_SECONDS", "60"))
