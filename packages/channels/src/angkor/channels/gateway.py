"""ChannelGateway -- 按渠道分派投递

渠道 -> 适配器 为显式查找表；未注册的渠道抛出 ChannelDeliveryError，
由 NotificationDispatcher 记为失败尝试。
"""

import structlog
from angkor.core.models import Channel, DeliveryReceipt, Notification

from .exceptions import ChannelDeliveryError
from .protocols import ChannelAdapter

log = structlog.get_logger()


class ChannelGateway:
    """渠道网关

    持有 in_app / email / sms / chat 四个适配器，不做重试、不做降级。
    """

    def __init__(self, adapters: dict[Channel, ChannelAdapter]) -> None:
        self._adapters = dict(adapters)

    @property
    def channels(self) -> list[Channel]:
        return list(self._adapters)

    async def send(self, channel: Channel, notification: Notification) -> DeliveryReceipt:
        """通过指定渠道投递

        Raises:
            ChannelDeliveryError: 渠道未注册
            ChannelError: 适配器抛出的渠道异常原样传播
        """
        adapter = self._adapters.get(channel)
        if adapter is None:
            raise ChannelDeliveryError(channel, "no adapter registered")
        return await adapter.send(notification)

    async def send_in_app(self, notification: Notification) -> DeliveryReceipt:
        return await self.send(Channel.IN_APP, notification)

    async def send_email(self, notification: Notification) -> DeliveryReceipt:
        return await self.send(Channel.EMAIL, notification)

    async def send_sms(self, notification: Notification) -> DeliveryReceipt:
        return await self.send(Channel.SMS, notification)

    async def send_chat(self, notification: Notification) -> DeliveryReceipt:
        return await self.send(Channel.CHAT, notification)
