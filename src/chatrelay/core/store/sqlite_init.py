"""SQLite 数据库初始化

PRAGMA 配置 + messages 表 DDL + 索引创建（仅 CREATE IF NOT EXISTS，不做迁移）。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# messages 表 DDL
# seq 为写入顺序，timestamp 相同时作为稳定排序的次序键
_MESSAGES_DDL = """
CREATE TABLE IF NOT EXISTS messages (
    seq           INTEGER PRIMARY KEY AUTOINCREMENT,
    message_id    TEXT NOT NULL UNIQUE,
    username      TEXT NOT NULL,
    text          TEXT,
    media         TEXT,
    media_kind    TEXT NOT NULL DEFAULT 'none',
    device        TEXT,
    source_url    TEXT,
    source_title  TEXT,
    timestamp_ms  INTEGER NOT NULL,
    created_at    TEXT NOT NULL
);
"""

_MESSAGES_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_messages_ts ON messages(timestamp_ms DESC, seq DESC);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.execute("PRAGMA journal_mode = WAL;")

    await conn.execute(_MESSAGES_DDL)
    for idx_sql in _MESSAGES_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
