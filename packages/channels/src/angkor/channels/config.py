"""ChannelConfig -- 渠道适配器配置加载

从环境变量加载配置，不硬编码外部网关地址。
"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()


class ChannelConfig(BaseModel):
    """Channels 包配置 -- 从环境变量加载

    环境变量:
        ANGKOR_CHANNEL_MODE: 渠道运行模式（log/webhook）
        ANGKOR_EMAIL_WEBHOOK_URL / ANGKOR_SMS_WEBHOOK_URL / ANGKOR_CHAT_WEBHOOK_URL:
            webhook 模式下各渠道网关地址（为空时该渠道退回 log 适配器）
        ANGKOR_CALENDAR_WEBHOOK_URL: 外部日历推送地址
        ANGKOR_CHANNEL_API_KEY: 网关访问密钥
        ANGKOR_CHANNEL_TIMEOUT_S: 调用超时（秒，默认 10）
    """

    mode: Literal["log", "webhook"] = Field(
        default="log",
        description="渠道运行模式：log（模拟投递） / webhook（HTTP 网关）",
    )
    email_webhook_url: str = Field(default="")
    sms_webhook_url: str = Field(default="")
    chat_webhook_url: str = Field(default="")
    calendar_webhook_url: str = Field(default="")
    api_key: SecretStr = Field(default=SecretStr(""), description="网关访问密钥")
    timeout_s: int = Field(default=10, ge=1, description="网关调用超时（秒）")


def load_channel_config() -> ChannelConfig:
    """从环境变量加载 Channel 配置

    环境变量映射:
        ANGKOR_CHANNEL_MODE -> mode (默认 "log")
        ANGKOR_*_WEBHOOK_URL -> *_webhook_url (默认 "")
        ANGKOR_CHANNEL_API_KEY -> api_key (默认 "")
        ANGKOR_CHANNEL_TIMEOUT_S -> timeout_s (默认 10)

    Returns:
        ChannelConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("ANGKOR_CHANNEL_MODE"):
        if val in ("log", "webhook"):
            kwargs["mode"] = val
        else:
            log.warning(
                "invalid_channel_mode_config",
                env_var="ANGKOR_CHANNEL_MODE",
                value=val,
                fallback="log",
            )

    for field_name, env_var in (
        ("email_webhook_url", "ANGKOR_EMAIL_WEBHOOK_URL"),
        ("sms_webhook_url", "ANGKOR_SMS_WEBHOOK_URL"),
        ("chat_webhook_url", "ANGKOR_CHAT_WEBHOOK_URL"),
        ("calendar_webhook_url", "ANGKOR_CALENDAR_WEBHOOK_URL"),
    ):
        if val := os.environ.get(env_var):
            kwargs[field_name] = val

    if val := os.environ.get("ANGKOR_CHANNEL_API_KEY"):
        kwargs["api_key"] = SecretStr(val)

    if val := os.environ.get("ANGKOR_CHANNEL_TIMEOUT_S"):
        try:
            kwargs["timeout_s"] = int(val)
        except ValueError:
            log.warning(
                "invalid_timeout_config",
                env_var="ANGKOR_CHANNEL_TIMEOUT_S",
                value=val,
                fallback=10,
            )
            # 使用默认值，不阻塞启动

    return ChannelConfig(**kwargs)
