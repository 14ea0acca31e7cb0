"""Configuration settings for the blood bank coordination service."""

import os


def get_postgres_uri():
    """Get PostgreSQL connection URI from environment variables."""
    host = os.environ.get("DB_HOST", "localhost")
    port = 5433 if host == "localhost" else 5432
    password = os.environ.get("DB_PASSWORD", "bloodbank_pass")
    user = os.environ.get("DB_USER", "bloodbank_user")
    db_name = os.environ.get("DB_NAME", "bloodbank_db")
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{db_name}"


def get_redis_host_and_port():
    """Get Redis connection details from environment variables."""
    host = os.environ.get("REDIS_HOST", "localhost")
    port = int(os.environ.get("REDIS_PORT", "6379"))
    return dict(host=host, port=port)


def get_notification_channel():
    """Redis channel that receives blood request and donation events."""
    return os.environ.get("NOTIFICATION_CHANNEL", "bloodbank:requests")


def get_api_host_and_port():
    """Get API bind address from environment variables."""
    host = os.environ.get("API_HOST", "localhost")
    port = int(os.environ.get("API_PORT", "8000"))
    return dict(host=host, port=port)



def get_log_level():
    """Get log level name from environment variables."""
    return os.environ.get("LOG_LEVEL", "INFO").upper()
