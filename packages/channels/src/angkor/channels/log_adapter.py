"""LoggingChannelAdapter / EchoCalendarSync -- 模拟投递与模拟日历同步

未配置外部网关时的默认适配器：只记录结构化日志并返回成功回执。
in_app 渠道始终使用此适配器，站内通知由前端读取通知集合展示。
"""

import time

import structlog
from angkor.core.models import Channel, DeliveryReceipt, Notification, SyncStatus

log = structlog.get_logger()


class LoggingChannelAdapter:
    """模拟渠道适配器 -- 记录日志即视为投递成功"""

    def __init__(self, channel: Channel) -> None:
        self.channel = channel

    async def send(self, notification: Notification) -> DeliveryReceipt:
        start_time = time.monotonic()

        await log.ainfo(
            "notification_delivered",
            channel=self.channel.value,
            notification_id=notification.notification_id,
            target_id=notification.target_id,
            title=notification.title,
            simulated=True,
        )

        return DeliveryReceipt(
            channel=self.channel,
            success=True,
            detail="simulated",
            duration_ms=int((time.monotonic() - start_time) * 1000),
        )


class EchoCalendarSync:
    """模拟外部日历同步 -- 对所有目标直接确认"""

    async def push_event(self, target_name: str, ics_payload: str) -> SyncStatus:
        await log.ainfo(
            "calendar_push_simulated",
            target_name=target_name,
            payload_size=len(ics_payload),
        )
        return SyncStatus.COMPLETED
