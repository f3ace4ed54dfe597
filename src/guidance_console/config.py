"""Runtime settings and fixed business rules."""
import os

# API
DEFAULT_API_URL = os.environ.get("GUIDANCE_API_URL", "http://localhost:8000")
REQUEST_TIMEOUT = float(os.environ.get("GUIDANCE_API_TIMEOUT", "15"))

# Question timing (seconds). The threshold is user-adjustable per view.
DEFAULT_TIME_THRESHOLD = 60
VERY_SLOW_FACTOR = 1.5

# Minimum score counted as a pass
PASS_MARK = 10

# Difficulty tiers by correct percentage, checked in order with strict "<"
DIFFICULTY_CUTS = [
    (30, "extreme_hard"),
    (50, "hard"),
    (70, "moderate"),
    (85, "easy"),
]
TOP_DIFFICULTY = "super_easy"

# Pagination
SHOW_ALL = -1
DEFAULT_PAGE_SIZE = 20
PAGE_SIZE_CHOICES = [20, 30, 40, 50]

# Reports
REPORT_DIR = os.path.join(os.path.expanduser("~"), ".guidance_console", "reports")
