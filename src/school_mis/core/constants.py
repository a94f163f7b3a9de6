"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MAX_LOGIN_ATTEMPTS = 5
LOCK_MINUTES = 30
RESET_TOKEN_MINUTES = 10
RESET_TOKEN_BYTES = 32

DEFAULT_SESSION_IDLE_SECONDS = 300
DEFAULT_ACCESS_TOKEN_DAYS = 7
DEFAULT_REFRESH_TOKEN_DAYS = 30
JWT_ALGORITHM = "HS256"

MAX_LATE_MINUTES = 240
MAX_REMARKS_LENGTH = 200
DEFAULT_HISTORY_LIMIT = 30
RECENT_ATTENDANCE_LIMIT = 20
RECENT_DISCIPLINE_LIMIT = 10

CLASS_NAMES = ("Nursery", "KG", "1", "2", "3", "4", "5", "6", "7", "8", "9", "10", "11", "12")
MAX_SECTIONS = 4
MIN_CLASS_CAPACITY = 10
MAX_CLASS_CAPACITY = 60
DEFAULT_CLASS_CAPACITY = 40
MAX_ROLL_NUMBER = 100
MAX_TEACHER_EXPERIENCE = 50

PASSWORD_MIN_LENGTH = 8
PASSWORD_SPECIAL_CHARS = "!@#$%^&*"
