# config.py
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Database configuration
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./murmur.db")

# Logging
LOG_DIR = os.getenv("LOG_DIR")  # defaults to ./logs next to the project
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Messaging
MESSAGES_PAGE_SIZE = int(os.getenv("MESSAGES_PAGE_SIZE", 20))
MESSAGES_MAX_PAGE_SIZE = int(os.getenv("MESSAGES_MAX_PAGE_SIZE", 100))
# Marking a message as seen also marks it delivered
SEEN_IMPLIES_DELIVERED = os.getenv("SEEN_IMPLIES_DELIVERED", "true").lower() == "true"

# Profile search
SEARCH_RESULT_LIMIT = int(os.getenv("SEARCH_RESULT_LIMIT", 20))
