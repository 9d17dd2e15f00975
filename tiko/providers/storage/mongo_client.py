"""The single MongoDB client shared by every store.

Built once from ``MONGODB_URI`` in ``tiko/main.py`` (or the maintenance
CLI) and injected into the stores; nothing else opens a connection.
"""

from __future__ import annotations

from pymongo import MongoClient
from pymongo.database import Database

from tiko.config.settings import Settings
from tiko.utils.errors import ConfigurationError
from tiko.utils.logging import get_logger

logger = get_logger(__name__)


def create_mongo_client(settings: Settings) -> MongoClient:
    """Return a lazily-connecting client for ``settings.mongodb_uri``.

    Raises
    ------
    ConfigurationError
        If no URI is configured.
    """
    if not settings.mongodb_uri:
        raise ConfigurationError("MONGODB_URI is not set", provider_name="mongodb")
    timeout_ms = int(settings.http_timeout * 1000)
    client: MongoClient = MongoClient(
        settings.mongodb_uri,
        serverSelectionTimeoutMS=timeout_ms,
        connectTimeoutMS=timeout_ms,
        tz_aware=True,
        appname="tiko",
    )
    logger.info("mongo_client_created", database=settings.mongodb_db_name)
    return client


def get_database(client: MongoClient, settings: Settings) -> Database:
    return client[settings.mongodb_db_name]
