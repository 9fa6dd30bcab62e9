"""
Environment configuration module
Loads environment variables for the rate source, cache and policy file.
"""

import os
from dotenv import load_dotenv

# Load .env file (for local development)
load_dotenv()

# Open Exchange Rates
OPENEXCHANGERATES_API_KEY = os.getenv('OPENEXCHANGERATES_API_KEY', '')
RATE_API_TIMEOUT = int(os.getenv('RATE_API_TIMEOUT', '10'))

# Offline mock rate source and in-memory cache toggle
USE_MOCK = os.getenv('USE_MOCK', 'false').lower() == 'true'
USE_CACHE = os.getenv('USE_CACHE', 'true').lower() != 'false'

# Redis configuration (optional, persists rate tables across runs)
REDIS_URL = os.getenv('REDIS_URL', '')
KV_ENABLED = bool(REDIS_URL)
RATE_CACHE_TTL = int(os.getenv('RATE_CACHE_TTL', '3600'))  # 1 hour for today's table

# Policy thresholds file (defaults to expense_audit/config/policy.yaml)
POLICY_PATH = os.getenv('POLICY_PATH', '')

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


def missing_config(use_mock: bool = USE_MOCK) -> list[str]:
    """Return required variables that are not set for the selected mode."""
    required_vars = {} if use_mock else {
        'OPENEXCHANGERATES_API_KEY': OPENEXCHANGERATES_API_KEY,
    }
    return [var_name for var_name, var_value in required_vars.items() if not var_value]
