from dotenv import load_dotenv
import os

REQUIRED_VARS = ['DATABASE_URL']


def init_env(config_class=None):
    """Initialize environment variables from .env file"""
    if config_class is not None and getattr(config_class, 'TESTING', False):
        return

    load_dotenv()

    # Ensure critical environment variables are set
    missing_vars = [var for var in REQUIRED_VARS if not os.getenv(var)]

    if missing_vars:
        raise EnvironmentError(
            f"Missing required environment variables: {', '.join(missing_vars)}"
        )
