"""CLI 入口模块 -- python -m chatrelay.core <command>

支持的命令：
  clear                         清空所有消息
  purge --max-age-hours <N>     删除早于 N 小时的消息
"""

import asyncio
import sys
from datetime import UTC, datetime, timedelta

from .config import load_store_config
from .exceptions import StoreUnavailableError

_USAGE = """用法: python -m chatrelay.core <command>
命令:
  clear                         清空所有消息
  purge --max-age-hours <N>     删除早于 N 小时的消息"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command = sys.argv[1]

    if command == "clear":
        asyncio.run(clear_messages())
    elif command == "purge":
        args = sys.argv[2:]
        if len(args) != 2 or args[0] != "--max-age-hours":
            print(_USAGE)
            sys.exit(1)
        try:
            max_age_hours = float(args[1])
        except ValueError:
            print(f"无效的小时数: {args[1]}")
            sys.exit(1)
        asyncio.run(purge_messages(max_age_hours))
    else:
        print(f"未知命令: {command}")
        print("可用命令: clear, purge")
        sys.exit(1)


async def clear_messages() -> None:
    """执行批量清空"""
    from .store import create_message_store

    config = load_store_config()
    print(f"存储后端: {config.backend} ({config.db_path})")

    try:
        store = await create_message_store(config)
    except StoreUnavailableError as e:
        print(f"Store 不可用: {e}")
        sys.exit(2)

    try:
        deleted = await store.delete_all()
        print(f"已删除 {deleted} 条消息")
    finally:
        await store.close()


async def purge_messages(max_age_hours: float) -> None:
    """执行按时间清理"""
    from .store import create_message_store

    config = load_store_config()
    cutoff = datetime.now(UTC) - timedelta(hours=max_age_hours)
    print(f"存储后端: {config.backend} ({config.db_path})")
    print(f"清理 {cutoff.isoformat()} 之前的消息...")

    try:
        store = await create_message_store(config)
    except StoreUnavailableError as e:
        print(f"Store 不可用: {e}")
        sys.exit(2)

    try:
        deleted = await store.purge_older_than(cutoff)
        print(f"清理完成，删除 {deleted} 条消息")
    finally:
        await store.close()


if __name__ == "__main__":
    main()
