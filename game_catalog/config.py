"""Environment-driven configuration.

Values are read lazily so tests can patch the environment per case.
"""
import os

from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv()


IGDB_BASE_URL = "https://api.igdb.com/v4"
TWITCH_TOKEN_URL = "https://id.twitch.tv/oauth2/token"

STEAM_SEARCH_ENDPOINT = "https://store.steampowered.com/search/results/"
STEAM_HEADER_IMAGE_BASE = "https://shared.fastly.steamstatic.com/store_item_assets/steam/apps"
STEAM_APP_URL_BASE = "https://store.steampowered.com/app"

# Importer tuning: IGDB allows 4 requests/second per client
IMPORT_BATCH_SIZE = 500
IMPORT_TARGET_GAMES = 5000
IMPORT_MIN_DELAY_SECONDS = 0.26
DEFAULT_CHECKPOINT_FILE = "scripts/.import-checkpoint.json"

REQUEST_TIMEOUT_SECONDS = 30.0


def get_twitch_credentials() -> tuple[str, str]:
    """
    Read the catalog API client credentials.

    Returns:
        Tuple of (client_id, client_secret)

    Raises:
        ConfigurationError: If either value is unset or empty
    """
    client_id = os.getenv("TWITCH_CLIENT_ID")
    client_secret = os.getenv("TWITCH_CLIENT_SECRET")

    if not client_id or not client_secret:
        raise ConfigurationError("TWITCH_CLIENT_ID and TWITCH_CLIENT_SECRET are required")

    return client_id, client_secret


def get_connection_string() -> str:
    """Get database connection string from environment.

    Supports DATABASE_URL / POSTGRES_URL or individual POSTGRES_* variables.
    """
    url = os.getenv("DATABASE_URL") or os.getenv("POSTGRES_URL")
    if url:
        return url

    host = os.getenv("POSTGRES_HOST")
    user = os.getenv("POSTGRES_USER")
    password = os.getenv("POSTGRES_PASSWORD")
    database = os.getenv("POSTGRES_DATABASE")
    port = os.getenv("POSTGRES_PORT", "5432")

    if not all([host, user, password, database]):
        raise ConfigurationError(
            "Missing database configuration. Set DATABASE_URL or individual POSTGRES_* variables."
        )

    return f"postgresql://{user}:{password}@{host}:{port}/{database}"


def get_checkpoint_path() -> str:
    """Path of the importer checkpoint file."""
    return os.getenv("IMPORT_CHECKPOINT_FILE", DEFAULT_CHECKPOINT_FILE)
