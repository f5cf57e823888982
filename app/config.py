"""
Application configuration and paths.

Every value can be overridden through an environment variable (or a .env file
in the working directory).
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(override=False)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {'0', 'false', 'no', 'off'}


# Application identity
APP_NAME = 'PirateVoice'
APP_VERSION = '0.1.0'

# Server configuration
SERVER_HOST = os.environ.get('SERVER_HOST', '127.0.0.1')
SERVER_PORT = int(os.environ.get('SERVER_PORT', '5111'))

# Paths
DATA_DIR = Path(os.environ.get('DATA_DIR', str(Path.home() / '.pirate-voice')))

# Database configuration (generation history)
DATABASE_PATH = DATA_DIR / 'history.db'
DATABASE_URL = os.environ.get('DATABASE_URL', f'sqlite+aiosqlite:///{DATABASE_PATH}')

# Speech synthesis provider
REPLICATE_API_TOKEN = os.environ.get('REPLICATE_API_TOKEN', '')
REPLICATE_BASE_URL = os.environ.get('REPLICATE_BASE_URL', 'https://api.replicate.com')
REPLICATE_MODEL = os.environ.get('REPLICATE_MODEL', 'minimax/speech-02-hd')
REPLICATE_VOICE_ID = os.environ.get('REPLICATE_VOICE_ID', 'R8_QBE6P33A')
REPLICATE_TIMEOUT_S = float(os.environ.get('REPLICATE_TIMEOUT_S', '30.0'))

# Polling policy: 30 checks 2 seconds apart gives a 60 second ceiling
POLL_INTERVAL_S = float(os.environ.get('POLL_INTERVAL_S', '2.0'))
POLL_MAX_ATTEMPTS = int(os.environ.get('POLL_MAX_ATTEMPTS', '30'))
POLL_BACKOFF = float(os.environ.get('POLL_BACKOFF', '1.0'))  # 1.0 = fixed interval
POLL_MAX_INTERVAL_S = float(os.environ.get('POLL_MAX_INTERVAL_S', '10.0'))

# Concurrent provider jobs per process
MAX_INFLIGHT_JOBS = int(os.environ.get('MAX_INFLIGHT_JOBS', '4'))

# Request validation
MAX_TEXT_LENGTH = int(os.environ.get('MAX_TEXT_LENGTH', '500'))
MIN_INTENSITY = 1
MAX_INTENSITY = 10
DEFAULT_INTENSITY = int(os.environ.get('DEFAULT_INTENSITY', '5'))

PIRATE_TRANSFORM_ENABLED = _env_bool('PIRATE_TRANSFORM_ENABLED', True)

# Object storage
SUPABASE_URL = os.environ.get('SUPABASE_URL', '')
SUPABASE_KEY = os.environ.get('SUPABASE_KEY', '')
AUDIO_BUCKET = os.environ.get('AUDIO_BUCKET', 'voxvoice')
AUDIO_CONTENT_TYPE = 'audio/mpeg'
# Constant bitrate requested from the provider (bits per second)
AUDIO_BITRATE = 128000
AUDIO_CACHE_CONTROL = os.environ.get('AUDIO_CACHE_CONTROL', '3600')

# 'supabase', 'memory' or 'none' (return the provider URL without relocation)
STORAGE_BACKEND = os.environ.get(
    'STORAGE_BACKEND',
    'supabase' if SUPABASE_URL and SUPABASE_KEY else 'none',
).strip().lower()
MEMORY_STORAGE_BASE_URL = os.environ.get(
    'MEMORY_STORAGE_BASE_URL', f'http://{SERVER_HOST}:{SERVER_PORT}/storage'
)

RELOCATION_REQUIRED = _env_bool('RELOCATION_REQUIRED', True)
RELOCATE_RETRIES = int(os.environ.get('RELOCATE_RETRIES', '0'))
DOWNLOAD_TIMEOUT_S = float(os.environ.get('DOWNLOAD_TIMEOUT_S', '30.0'))
SIGNED_URL_TTL_S = int(os.environ.get('SIGNED_URL_TTL_S', '3600'))

# History log
HISTORY_LIMIT = int(os.environ.get('HISTORY_LIMIT', '10'))

if STORAGE_BACKEND not in {'supabase', 'memory', 'none'}:
    raise ValueError('STORAGE_BACKEND must be one of: supabase, memory, none')
if POLL_MAX_ATTEMPTS < 1:
    raise ValueError('POLL_MAX_ATTEMPTS must be >= 1')
if MAX_INFLIGHT_JOBS < 1:
    raise ValueError('MAX_INFLIGHT_JOBS must be >= 1')
if HISTORY_LIMIT < 1:
    raise ValueError('HISTORY_LIMIT must be >= 1')


def ensure_directories():
    """Create required directories if they don't exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
