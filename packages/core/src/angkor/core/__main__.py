"""CLI 入口模块 -- python -m angkor.core <command>

支持的命令：
  report <factory_id>  直接从存储读取任务并输出报表 JSON
"""

import asyncio
import sys

from .config import TASKS_COLLECTION, get_db_path


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print("用法: python -m angkor.core <command>")
        print("命令:")
        print("  report <factory_id>  输出指定工厂的任务报表")
        sys.exit(1)

    command = sys.argv[1]

    if command == "report":
        if len(sys.argv) < 3:
            print("用法: python -m angkor.core report <factory_id>")
            sys.exit(1)
        asyncio.run(print_task_report(sys.argv[2]))
    else:
        print(f"未知命令: {command}")
        print("可用命令: report")
        sys.exit(1)


async def print_task_report(factory_id: str) -> None:
    """读取任务集合并打印报表"""
    from .models import Task, utc_now
    from .reporting import summarize_tasks
    from .store import create_document_store

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store = await create_document_store(db_path)
    try:
        documents = await store.get_collection(TASKS_COLLECTION, {"factory_id": factory_id})
        tasks = [Task.model_validate(doc) for doc in documents]
        report = summarize_tasks(tasks, factory_id, utc_now())
        print(report.model_dump_json(indent=2))
    finally:
        await store.close()


if __name__ == "__main__":
    main()
