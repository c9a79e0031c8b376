"""Celery background tasks for Chatline."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Iterable, List

from celery import Task

from .celery_app import celery_app
from .core.exceptions import ServiceUnavailableError
from .database import (
    Chat,
    Image,
    Message,
    PendingUpload,
    User,
    async_session_maker,
    engine,
)
from .repositories import (
    ChatRepository,
    ImageRepository,
    MessageRepository,
    PendingUploadRepository,
    UserRepository,
)
from .services import ImageService, PresignedUrlService
from .storage import get_storage

logger = logging.getLogger(__name__)


# Custom task base class to handle async operations
class AsyncTask(Task):
    """Base task class that supports async operations."""

    def __call__(self, *args, **kwargs):
        """Override call to run async functions in a fresh event loop."""
        result = self.run(*args, **kwargs)
        if asyncio.iscoroutine(result):
            return asyncio.run(result)
        return result


# ============================================================================
# Storage Tasks
# ============================================================================

@celery_app.task(bind=True, max_retries=3)
def delete_storage_objects(self, keys: List[str]) -> int:
    """
    Delete replaced or orphaned objects from the store.

    Args:
        keys: Storage keys to delete

    Returns:
        Number of keys deleted
    """
    try:
        failed = get_storage().delete_objects(keys)
    except ServiceUnavailableError:
        logger.warning(f"Storage not configured, dropping deletion of {len(keys)} objects")
        return 0
    except Exception as exc:
        logger.error(f"Error deleting {len(keys)} objects: {exc}")
        raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))

    if failed:
        logger.warning(f"{len(failed)} objects not deleted, retrying")
        raise self.retry(args=[failed], countdown=60 * (2 ** self.request.retries))

    logger.info(f"Deleted {len(keys)} objects from storage")
    return len(keys)


def schedule_object_deletion(keys: Iterable[str]) -> None:
    """Queue storage deletion for keys. Never raises; the row changes already happened."""
    keys = [key for key in keys if key]
    if not keys:
        return
    try:
        delete_storage_objects.delay(keys)
    except Exception as exc:
        logger.error(f"Could not queue deletion of {len(keys)} objects: {exc}")


# ============================================================================
# Maintenance Tasks
# ============================================================================

@celery_app.task(base=AsyncTask)
async def cleanup_expired_uploads() -> dict:
    """
    Delete upload grants that expired without being confirmed.

    Runs on the beat schedule. Objects uploaded for those grants are deleted
    best-effort when storage is configured.

    Returns:
        Dict with the number of grants removed
    """
    try:
        logger.info("Starting expired upload cleanup task")

        try:
            storage = get_storage()
        except ServiceUnavailableError:
            storage = None

        async with async_session_maker() as session:
            chat_repo = ChatRepository(Chat, session)
            image_repo = ImageRepository(Image, session)
            message_repo = MessageRepository(Message, session)
            pending_repo = PendingUploadRepository(PendingUpload, session)
            image_service = ImageService(
                image_repo,
                UserRepository(User, session),
                chat_repo,
                message_repo,
                pending_repo,
            )
            service = PresignedUrlService(
                pending_repo, image_repo, chat_repo, message_repo, image_service, storage
            )

            keys = await service.cleanup_expired_uploads(delete_objects=storage is not None)
            await session.commit()

        logger.info(f"Cleanup complete: {len(keys)} expired upload grants deleted")

        return {
            "uploads_deleted": len(keys),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    except Exception as exc:
        logger.error(f"Error in upload cleanup task: {exc}")
        raise
    finally:
        # Each task runs in its own event loop; pooled connections must not outlive it
        await engine.dispose()
