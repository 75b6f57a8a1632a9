"""
API key resolution: the user's own OpenRouter key (BYOK) or the shared key.
"""

import logging

from cryptography.fernet import InvalidToken

from studybuddy.config import get_settings
from studybuddy.core.database import get_supabase_client
from studybuddy.core.exceptions import ApiKeyNotFoundError
from studybuddy.core.security import decrypt_value

logger = logging.getLogger(__name__)


def get_user_api_key(user_id: str) -> str:
    """Resolve the OpenRouter key to use for a user's pipeline run.

    1. Look up the user's encrypted key.
    2. Decrypt it if found.
    3. Fall back to OPENROUTER_API_KEY when there is no key or decryption fails.

    Args:
        user_id: Opaque user identifier from the auth layer.

    Returns:
        The API key string.

    Raises:
        ApiKeyNotFoundError: If neither a user key nor the shared key exists.
    """
    settings = get_settings()
    api_key = settings.OPENROUTER_API_KEY

    db = get_supabase_client()
    result = (
        db.table(settings.USER_API_KEYS_TABLE)
        .select("openrouter_key_encrypted")
        .eq("user_id", user_id)
        .limit(1)
        .execute()
    )

    if result.data:
        try:
            api_key = decrypt_value(result.data[0]["openrouter_key_encrypted"])
        except (InvalidToken, KeyError, TypeError) as e:
            logger.error(f"Failed to decrypt API key for user {user_id}, using shared key: {e}")

    if not api_key:
        raise ApiKeyNotFoundError()

    return api_key
