"""Database error types and the decorator that maps driver errors onto them."""

import logging
from typing import Any, Callable, Dict
from functools import wraps
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import (
    ConnectionFailure,
    DuplicateKeyError,
    OperationFailure,
    ServerSelectionTimeoutError,
)
from beanie.exceptions import DocumentNotFound, RevisionIdWasChanged

logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Base class for persistence failures."""


class DatabaseConnectionError(DatabaseError):
    """MongoDB could not be reached."""


class DuplicateError(DatabaseError):
    """A unique index rejected the write."""


class NotFoundError(DatabaseError):
    """The document does not exist."""


class ConcurrencyError(DatabaseError):
    """The document changed underneath a save."""


def handle_db_errors(func: Callable) -> Callable:
    """Translate pymongo/beanie errors raised by a repository coroutine."""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except DatabaseError:
            raise
        except (ServerSelectionTimeoutError, ConnectionFailure) as e:
            logger.error(f"{func.__qualname__}: database unreachable: {e}")
            raise DatabaseConnectionError(f"Database unavailable: {e}") from e
        except DuplicateKeyError as e:
            logger.warning(f"{func.__qualname__}: duplicate key: {e}")
            raise DuplicateError(f"Duplicate entry: {e}") from e
        except DocumentNotFound as e:
            raise NotFoundError(f"Document not found: {e}") from e
        except RevisionIdWasChanged as e:
            logger.warning(f"{func.__qualname__}: concurrent modification: {e}")
            raise ConcurrencyError(f"Document was modified by another process: {e}") from e
        except OperationFailure as e:
            logger.error(f"{func.__qualname__}: operation failed: {e}")
            raise DatabaseError(f"Database operation failed: {e}") from e

    return wrapper


async def check_connection(client: AsyncIOMotorClient) -> Dict[str, Any]:
    """Ping MongoDB for the health endpoint."""
    try:
        await client.admin.command('ping')
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {'status': 'unhealthy', 'error': str(e)}
    return {'status': 'healthy'}
