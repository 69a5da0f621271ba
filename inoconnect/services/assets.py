"""
Stored asset collaborator.

Uploads and transcoding happen outside this service; records only keep the
resulting URLs. When a record owning an asset is deleted the store is asked to
drop the file. That call is best effort: a failure is logged and never fails
the deletion of the record itself.
"""
import logging

logger = logging.getLogger(__name__)


class AssetStore:
    """
    Default store with no storage backend attached.

    Deployments with object storage subclass this and implement ``remove``.
    """

    async def remove(self, url: str) -> None:
        logger.info(f"[ASSETS] No storage backend configured, dropping reference to {url}")

    async def delete(self, url: str) -> bool:
        """
        Delete the asset behind ``url``.

        Returns:
            bool: True if the store accepted the deletion
        """
        if not url:
            return False
        try:
            await self.remove(url)
        except Exception as e:
            logger.warning(f"[ASSETS] Failed to delete asset {url}: {e}", exc_info=True)
            return False
        return True
