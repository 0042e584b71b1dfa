# config.py
# ==============================================================================
# Configuration — environment variables, optionally loaded from a .env file
# ==============================================================================

import os

from dotenv import load_dotenv

load_dotenv()


DEFAULT_DATABASE_URL = 'sqlite:///supply_chain.db'
DEFAULT_GROQ_MODEL = 'llama-3.3-70b-versatile'
DEFAULT_VOICE_ID = 'JBFqnCBsd6RMkjVDRZzb'  # George
DEFAULT_BATCH_SIZE = 500


def _secret(name):
    """Read an API key; template placeholders count as unset."""
    value = os.getenv(name)
    if not value or (value.startswith('your-') and value.endswith('-here')):
        return None
    return value


def database_url():
    return os.getenv('DATABASE_URL', DEFAULT_DATABASE_URL)


def groq_api_key():
    return _secret('GROQ_API_KEY')


def groq_model():
    return os.getenv('GROQ_MODEL', DEFAULT_GROQ_MODEL)


def llm_temperature():
    return float(os.getenv('LLM_TEMPERATURE', '0.3'))


def elevenlabs_api_key():
    return _secret('ELEVENLABS_API_KEY')


def elevenlabs_voice_id():
    return os.getenv('ELEVENLABS_VOICE_ID', DEFAULT_VOICE_ID)


def import_batch_size():
    return int(os.getenv('IMPORT_BATCH_SIZE', str(DEFAULT_BATCH_SIZE)))


def agent_roster_path():
    return os.getenv('AGENT_ROSTER_PATH') or None


def api_host():
    return os.getenv('API_HOST', '127.0.0.1')


def api_port():
    return int(os.getenv('API_PORT', '5000'))
