"""Derived categories shared by filters, tables and reports."""
from guidance_console.config import (
    DEFAULT_TIME_THRESHOLD, VERY_SLOW_FACTOR, PASS_MARK, DIFFICULTY_CUTS, TOP_DIFFICULTY,
)

SPEED_STATUSES = ["normal", "slow", "very_slow"]
DIFFICULTY_TIERS = [label for _, label in DIFFICULTY_CUTS] + [TOP_DIFFICULTY]

SPEED_LABELS = {"normal": "Normal", "slow": "Slow", "very_slow": "Very Slow"}
DIFFICULTY_LABELS = {
    "extreme_hard": "Extreme Hard (<30% correct)",
    "hard": "Hard (30-50% correct)",
    "moderate": "Moderate (50-70% correct)",
    "easy": "Easy (70-85% correct)",
    "super_easy": "Super Easy (>85% correct)",
}


def speed_status(avg_time_seconds: float, threshold: float = DEFAULT_TIME_THRESHOLD) -> str:
    """Classify an average answer time against the threshold (strict ``>``)."""
    avg = avg_time_seconds or 0
    if avg > threshold * VERY_SLOW_FACTOR:
        return "very_slow"
    elif avg > threshold:
        return "slow"
    return "normal"


def get_speed_color(status: str) -> str:
    if status == "very_slow":
        return "red"
    elif status == "slow":
        return "yellow"
    return "green"


def difficulty_tier(wrong_percentage: float) -> str:
    correct_pct = 100 - (wrong_percentage or 0)
    for cut, label in DIFFICULTY_CUTS:
        if correct_pct < cut:
            return label
    return TOP_DIFFICULTY


def get_difficulty_color(tier: str) -> str:
    return {
        "extreme_hard": "red",
        "hard": "dark_orange",
        "moderate": "yellow",
        "easy": "green",
        "super_easy": "cyan",
    }.get(tier, "white")


def is_passing(score: float | None, pass_mark: float = PASS_MARK) -> bool:
    return (score or 0) >= pass_mark


def pass_label(score: float | None, pass_mark: float = PASS_MARK) -> str:
    return "Passed" if is_passing(score, pass_mark) else "Failed"
