"""Angkor Channels -- 通知投递与外部日历同步

packages/channels 的公开接口导出。
"""

import structlog
from angkor.core.models import Channel

# 配置
from .config import ChannelConfig, load_channel_config

# 异常
from .exceptions import (
    CalendarSyncError,
    ChannelDeliveryError,
    ChannelError,
    ChannelUnreachableError,
)

# 核心组件
from .gateway import ChannelGateway
from .log_adapter import EchoCalendarSync, LoggingChannelAdapter
from .policy import PRIORITY_CHANNELS, TYPE_CHANNELS, select_channels
from .protocols import CalendarSyncAdapter, ChannelAdapter
from .webhook import WebhookCalendarSync, WebhookChannelAdapter

log = structlog.get_logger()


def build_channel_gateway(config: ChannelConfig) -> ChannelGateway:
    """按配置组装渠道网关

    log 模式下全部渠道为模拟投递；webhook 模式下配置了地址的渠道走 HTTP，
    其余渠道（含 in_app）退回模拟投递。
    """
    urls = {
        Channel.EMAIL: config.email_webhook_url,
        Channel.SMS: config.sms_webhook_url,
        Channel.CHAT: config.chat_webhook_url,
    }
    adapters: dict[Channel, ChannelAdapter] = {}
    for channel in Channel:
        url = urls.get(channel, "")
        if config.mode == "webhook" and url:
            adapters[channel] = WebhookChannelAdapter(
                channel,
                url,
                api_key=config.api_key.get_secret_value(),
                timeout_s=config.timeout_s,
            )
        else:
            adapters[channel] = LoggingChannelAdapter(channel)

    log.info(
        "channel_gateway_built",
        mode=config.mode,
        adapters={c.value: type(a).__name__ for c, a in adapters.items()},
    )
    return ChannelGateway(adapters)


def build_calendar_sync(config: ChannelConfig) -> CalendarSyncAdapter:
    """按配置选择外部日历同步适配器"""
    if config.mode == "webhook" and config.calendar_webhook_url:
        return WebhookCalendarSync(
            config.calendar_webhook_url,
            api_key=config.api_key.get_secret_value(),
            timeout_s=config.timeout_s,
        )
    return EchoCalendarSync()


__all__ = [
    "CalendarSyncAdapter",
    "ChannelAdapter",
    "ChannelGateway",
    "LoggingChannelAdapter",
    "EchoCalendarSync",
    "WebhookChannelAdapter",
    "WebhookCalendarSync",
    "PRIORITY_CHANNELS",
    "TYPE_CHANNELS",
    "select_channels",
    "ChannelConfig",
    "load_channel_config",
    "build_channel_gateway",
    "build_calendar_sync",
    "ChannelError",
    "ChannelDeliveryError",
    "ChannelUnreachableError",
    "CalendarSyncError",
]
