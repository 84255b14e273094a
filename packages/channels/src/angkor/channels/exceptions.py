"""Channels 异常体系

渠道失败只影响通知自身的终态，不向创建通知的调用方传播。
"""

from angkor.core.models import Channel


class ChannelError(Exception):
    """Channels 包基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class ChannelDeliveryError(ChannelError):
    """单个渠道投递失败

    由 NotificationDispatcher 捕获并记录，不中断其他渠道。
    """

    def __init__(self, channel: Channel, reason: str) -> None:
        super().__init__(f"Delivery via {channel} failed: {reason}", recoverable=True)
        self.channel = channel
        self.reason = reason


class ChannelUnreachableError(ChannelError):
    """渠道网关不可达（连接失败、超时、DNS 解析失败等）"""

    def __init__(self, url: str, original_error: Exception) -> None:
        """
        Args:
            url: 尝试连接的网关地址
            original_error: 原始异常
        """
        super().__init__(
            f"Channel gateway unreachable: {url} -- {original_error}",
            recoverable=True,
        )
        self.url = url
        self.original_error = original_error


class CalendarSyncError(ChannelError):
    """外部日历推送失败"""

    def __init__(self, target_name: str, reason: str) -> None:
        super().__init__(f"Calendar sync to {target_name} failed: {reason}")
        self.target_name = target_name
