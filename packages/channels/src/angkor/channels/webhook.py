"""WebhookChannelAdapter / WebhookCalendarSync -- HTTP 网关投递封装

email / sms / chat 统一走 JSON webhook；外部日历推送以 text/calendar 提交 ICS 文本。
"""

import time

import httpx
import structlog
from angkor.core.models import Channel, DeliveryReceipt, Notification, SyncStatus

from .exceptions import CalendarSyncError, ChannelUnreachableError

log = structlog.get_logger()

# 连接类异常类型集合（映射为 ChannelUnreachableError）
_CONNECTION_ERROR_TYPES = (
    ConnectionError,
    OSError,
    TimeoutError,
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.TimeoutException,
)


def _auth_headers(api_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {api_key}"} if api_key else {}


class WebhookChannelAdapter:
    """HTTP webhook 渠道适配器

    每次投递 POST 一份通知 JSON；非 2xx 响应返回失败回执，连接错误抛出
    ChannelUnreachableError。
    """

    def __init__(
        self,
        channel: Channel,
        url: str,
        api_key: str = "",
        timeout_s: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            channel: 渠道
            url: 网关地址
            api_key: 网关访问密钥，为空时不带 Authorization 头
            timeout_s: 请求超时（秒）
            transport: 可选 httpx transport（测试注入 MockTransport）
        """
        self.channel = channel
        self._url = url
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._transport = transport

    async def send(self, notification: Notification) -> DeliveryReceipt:
        start_time = time.monotonic()
        body = {
            "channel": self.channel.value,
            "notification_id": notification.notification_id,
            "type": notification.type.value,
            "priority": notification.priority.value,
            "target_id": notification.target_id,
            "title": notification.title,
            "message": notification.message,
        }

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(
                    self._url,
                    json=body,
                    headers=_auth_headers(self._api_key),
                    timeout=self._timeout_s,
                )
        except _CONNECTION_ERROR_TYPES as e:
            log.warning(
                "channel_gateway_unreachable",
                channel=self.channel.value,
                url=self._url,
                error=str(e),
            )
            raise ChannelUnreachableError(url=self._url, original_error=e) from e

        duration_ms = int((time.monotonic() - start_time) * 1000)
        if resp.is_success:
            log.debug(
                "channel_webhook_delivered",
                channel=self.channel.value,
                notification_id=notification.notification_id,
                duration_ms=duration_ms,
            )
            return DeliveryReceipt(
                channel=self.channel,
                success=True,
                detail=f"HTTP {resp.status_code}",
                duration_ms=duration_ms,
            )

        log.warning(
            "channel_webhook_rejected",
            channel=self.channel.value,
            notification_id=notification.notification_id,
            status_code=resp.status_code,
        )
        return DeliveryReceipt(
            channel=self.channel,
            success=False,
            detail=f"HTTP {resp.status_code}",
            duration_ms=duration_ms,
        )


class WebhookCalendarSync:
    """HTTP 外部日历推送

    POST {url}/{target_name}，请求体为 ICS 文本。
    2xx 视为已确认（COMPLETED），其余抛出 CalendarSyncError，由调用方记录 FAILED。
    """

    def __init__(
        self,
        url: str,
        api_key: str = "",
        timeout_s: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._transport = transport

    async def push_event(self, target_name: str, ics_payload: str) -> SyncStatus:
        url = f"{self._url}/{target_name}"
        headers = {"Content-Type": "text/calendar; charset=utf-8", **_auth_headers(self._api_key)}

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(
                    url,
                    content=ics_payload.encode("utf-8"),
                    headers=headers,
                    timeout=self._timeout_s,
                )
        except _CONNECTION_ERROR_TYPES as e:
            raise ChannelUnreachableError(url=url, original_error=e) from e

        if not resp.is_success:
            raise CalendarSyncError(target_name, f"HTTP {resp.status_code}")

        log.info("calendar_push_completed", target_name=target_name, status_code=resp.status_code)
        return SyncStatus.COMPLETED

