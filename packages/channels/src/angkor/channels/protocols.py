"""渠道适配器 / 日历同步适配器接口"""

from typing import Protocol

from angkor.core.models import Channel, DeliveryReceipt, Notification, SyncStatus


class ChannelAdapter(Protocol):
    """单渠道投递适配器

    失败可以抛出异常，也可以返回 success=False 的回执，两者对分发器等价。
    """

    channel: Channel

    async def send(self, notification: Notification) -> DeliveryReceipt:
        """投递一条通知"""
        ...


class CalendarSyncAdapter(Protocol):
    """外部日历推送适配器 -- 只负责 provider 协议，不负责同步记录"""

    async def push_event(self, target_name: str, ics_payload: str) -> SyncStatus:
        """推送 ICS 文本到指定外部日历目标"""
        ...
