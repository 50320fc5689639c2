"""Configuration for the CabShare application."""

import os
from dotenv import load_dotenv

load_dotenv()

# Storage backend: the HTTP key-value server is used when a URL is set,
# otherwise a JSON file on disk
STORE_URL = os.getenv("CABSHARE_STORE_URL")
STORE_PATH = os.getenv(
    "CABSHARE_STORE_PATH",
    os.path.join(os.path.expanduser("~/.cabshare"), "storage.json"))
HTTP_TIMEOUT = float(os.getenv("CABSHARE_HTTP_TIMEOUT", "5"))

# Secret for session tokens - in production, set it in the environment
JWT_SECRET = os.getenv("CABSHARE_JWT_SECRET", "cabshare_secret_key")
JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_HOURS = int(os.getenv("CABSHARE_JWT_EXPIRATION_HOURS", "24"))

# Multiplies every simulated delay; 0 returns simulated results immediately
SIMULATION_SCALE = float(os.getenv("CABSHARE_SIMULATION_SCALE", "1.0"))

LOG_LEVEL = os.getenv("CABSHARE_LOG_LEVEL", "WARNING")
