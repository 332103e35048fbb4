"""MessageService -- 消息创建/查询/删除业务逻辑

路由层只做请求解析与响应组装，这里负责调用 Ingestion Pipeline 与 Record Store，
并记录业务日志。
"""

from datetime import UTC, datetime, timedelta

import structlog
from chatrelay.core.exceptions import MessageNotFoundError, StoreUnavailableError
from chatrelay.core.ingest import MessageIngestor
from chatrelay.core.models import Message, MessageDraft
from chatrelay.core.store import MessageStore

log = structlog.get_logger()


class MessageService:
    """消息业务服务"""

    def __init__(self, store: MessageStore, ingestor: MessageIngestor) -> None:
        self._store = store
        self._ingestor = ingestor

    async def create_message(self, draft: MessageDraft) -> Message:
        """校验并写入一条消息"""
        message = await self._ingestor.ingest(draft)
        log.info(
            "message_created",
            message_id=message.id,
            username=message.username,
            has_media=message.media is not None,
            from_source=message.source_url is not None,
        )
        return message

    async def list_messages(self, limit: int | None = None) -> list[Message]:
        """最近 limit 条消息，最旧在前"""
        return await self._store.list_recent(limit)

    async def delete_message(self, message_id: str) -> str:
        """按 ID 删除

        Raises:
            MessageNotFoundError: 消息不存在
        """
        deleted = await self._store.delete_one(message_id)
        if not deleted:
            raise MessageNotFoundError(message_id)
        log.info("message_deleted", message_id=message_id)
        return message_id

    async def clear_messages(self) -> int:
        """清空所有消息，返回删除条数"""
        deleted = await self._store.delete_all()
        log.info("messages_cleared", deleted_count=deleted)
        return deleted

    async def purge_messages(self, max_age: timedelta) -> int:
        """删除早于 now - max_age 的消息"""
        cutoff = datetime.now(UTC) - max_age
        deleted = await self._store.purge_older_than(cutoff)
        log.info("messages_purged", cutoff=cutoff.isoformat(), deleted_count=deleted)
        return deleted

    async def count_after_write(self) -> int | None:
        """写入成功后的消息总数，Store 不可用时返回 None（写入结果不受影响）"""
        try:
            return await self._store.count()
        except StoreUnavailableError as e:
            log.warning("message_count_unavailable", error=str(e))
            return None
