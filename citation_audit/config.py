# citation_audit/config.py
from dotenv import load_dotenv
import os

load_dotenv()

# API Keys
BRIGHTLOCAL_API_KEY = os.getenv("BRIGHTLOCAL_API_KEY")

# Provider defaults used when registering a location
BRIGHTLOCAL_COUNTRY = os.getenv("BRIGHTLOCAL_COUNTRY", "USA")
BRIGHTLOCAL_CATEGORY_ID = os.getenv("BRIGHTLOCAL_CATEGORY_ID", "605")
BUSINESS_TYPE = os.getenv("BUSINESS_TYPE", "Business")

# Runtime parameters
CONCURRENCY = int(os.getenv("CONCURRENCY", "5"))
REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "60"))
POLL_BATCH_SIZE = int(os.getenv("POLL_BATCH_SIZE", "10"))
POLL_INTERVAL_SECONDS = int(os.getenv("POLL_INTERVAL_SECONDS", "60"))
MAX_POLLS = int(os.getenv("MAX_POLLS", "30"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# URLs
BRIGHTLOCAL_URL = os.getenv("BRIGHTLOCAL_URL", "https://tools.brightlocal.com/seo-tools/api")

# File names
INPUT_CSV = os.getenv("INPUT_CSV", "locations.csv")
OUTPUT_CSV = os.getenv("OUTPUT_CSV", "citation_listings.csv")
