"""ChannelGateway + LoggingChannelAdapter + EchoCalendarSync 单元测试"""

from unittest.mock import AsyncMock

import pytest
from angkor.channels import (
    ChannelDeliveryError,
    ChannelGateway,
    EchoCalendarSync,
    LoggingChannelAdapter,
)
from angkor.core.models import Channel, DeliveryReceipt, SyncStatus


class TestLoggingChannelAdapter:
    async def test_simulated_success(self, sample_notification):
        adapter = LoggingChannelAdapter(Channel.EMAIL)
        receipt = await adapter.send(sample_notification)
        assert receipt.success is True
        assert receipt.channel == Channel.EMAIL
        assert receipt.detail == "simulated"
        assert receipt.duration_ms >= 0

    async def test_echo_calendar_sync(self):
        assert await EchoCalendarSync().push_event("google", "BEGIN:VCALENDAR") == (
            SyncStatus.COMPLETED
        )


class TestChannelGateway:
    async def test_dispatches_to_registered_adapter(self, sample_notification):
        sms = AsyncMock()
        sms.send.return_value = DeliveryReceipt(channel=Channel.SMS, success=True)
        gateway = ChannelGateway(
            {Channel.IN_APP: LoggingChannelAdapter(Channel.IN_APP), Channel.SMS: sms}
        )

        receipt = await gateway.send_sms(sample_notification)

        assert receipt.channel == Channel.SMS
        sms.send.assert_awaited_once_with(sample_notification)
        assert (await gateway.send_in_app(sample_notification)).success is True

    async def test_unregistered_channel_raises(self, sample_notification):
        gateway = ChannelGateway({Channel.IN_APP: LoggingChannelAdapter(Channel.IN_APP)})
        with pytest.raises(ChannelDeliveryError) as exc_info:
            await gateway.send_chat(sample_notification)
        assert exc_info.value.channel == Channel.CHAT

    async def test_adapter_error_propagates(self, sample_notification):
        email = AsyncMock()
        email.send.side_effect = ChannelDeliveryError(Channel.EMAIL, "mailbox full")
        gateway = ChannelGateway({Channel.EMAIL: email})
        with pytest.raises(ChannelDeliveryError, match="mailbox full"):
            await gateway.send_email(sample_notification)

    def test_channels_property(self):
        gateway = ChannelGateway(
            {channel: LoggingChannelAdapter(channel) for channel in Channel}
        )
        assert gateway.channels == list(Channel)
