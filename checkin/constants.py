# --- Environment Constants ---
ENV_DEVELOPMENT = "development"
ENV_STAGING = "staging"
ENV_PRODUCTION = "production"
ENV_TESTING = "testing"
# --- End Environment Constants ---

# --- Business Logic Constants ---
BUSINESS_TIMEZONE = "Australia/Sydney"  # Local time of the weekly service, used to decide "today"
SERVICE_WEEKDAY = 6  # Python weekday numbering, Monday is 0 and Sunday is 6
DAYS_PER_WEEK = 7

# --- Search Constants ---
MIN_SEARCH_TERM_LENGTH = 2
SEARCH_PAGE_SIZE = 20

# --- Age Classification Constants ---
# Inclusive upper bounds, in whole years of age on the cutoff date
PRESCHOOL_MAX_AGE = 4
PRIMARY_MAX_AGE = 8
AGE_CUTOFF_MONTH = 6
AGE_CUTOFF_DAY = 30

# --- Birthday Window ---
BIRTHDAY_WINDOW_DAYS = 7  # The service date and the six days before it

# --- Store Error Codes ---
UNIQUE_VIOLATION_CODE = "23505"  # Postgres unique_violation

UNKNOWN = "Unknown"
UNKNOWN_CHILD = "Unknown child"
