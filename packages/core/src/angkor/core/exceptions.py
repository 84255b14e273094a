"""Core 异常体系

NotFoundError / ValidationError / InvalidTransitionError 属于调用方错误，不重试；
BatchWriteError 表示原子批量写入失败，整个批次视为未生效。
"""


class OrchestrationError(Exception):
    """编排核心基础异常"""

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class NotFoundError(OrchestrationError):
    """引用了不存在的任务/事件/线程/通知 ID"""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(OrchestrationError):
    """创建/更新字段缺失或不合法，发生在任何写入之前"""

    def __init__(self, message: str, errors: list | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class InvalidTransitionError(OrchestrationError):
    """状态机之外的状态流转尝试"""

    def __init__(self, entity: str, from_status: str, to_status: str) -> None:
        super().__init__(f"Cannot transition {entity} from {from_status} to {to_status}")
        self.from_status = from_status
        self.to_status = to_status


class BatchWriteError(OrchestrationError):
    """原子批量写入失败（或存储不支持批量写入）

    整个批次视为未生效，不存在部分写入状态。
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message, recoverable=original_error is not None)
        self.original_error = original_error
