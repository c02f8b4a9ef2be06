import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Application environment
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
DEBUG = ENVIRONMENT == "development"

# Database settings
DATABASE_URL = os.getenv("DATABASE_URL")
TESTING = os.getenv("TESTING", "false").lower() == "true"
DB_RETRY_MAX_ATTEMPTS = int(os.getenv("DB_RETRY_MAX_ATTEMPTS", "3"))
DB_RETRY_BACKOFF_SECONDS = float(os.getenv("DB_RETRY_BACKOFF_SECONDS", "0.2"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Application settings
APP_NAME = "Family Gacha"
APP_VERSION = "1.0.0"

# Room and entry code settings
ROOM_CODE_LENGTH = int(os.getenv("ROOM_CODE_LENGTH", "6"))
ENTRY_CODE_PREFIX = os.getenv("ENTRY_CODE_PREFIX", "C-")
ENTRY_CODE_LENGTH = int(os.getenv("ENTRY_CODE_LENGTH", "5"))
CODE_GENERATION_MAX_ATTEMPTS = int(os.getenv("CODE_GENERATION_MAX_ATTEMPTS", "10"))
MAX_ENTRY_BATCH_SIZE = int(os.getenv("MAX_ENTRY_BATCH_SIZE", "200"))

# Room limits
ROOM_NAME_MAX_LENGTH = 100
ROOM_DESCRIPTION_MAX_LENGTH = 500

# Token economy
TOKENS_PER_CORRECT_ANSWER = int(os.getenv("TOKENS_PER_CORRECT_ANSWER", "1"))
TOKENS_PER_SPIN = int(os.getenv("TOKENS_PER_SPIN", "1"))

# Probability-weighted rooms may not declare more than this in total
PROBABILITY_TOTAL = 100

# Admin bootstrap (used by initialize_db.py)
ADMIN_NAME = os.getenv("ADMIN_NAME", "")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")
