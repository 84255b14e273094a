"""渠道选择策略 -- 以 (priority, type) 为键的显式查找表

选择结果是 (priority, type) 的纯函数：
- in_app 总是包含
- medium/high 增加 email，high 再增加 sms
- grievance_update / critical_alert 无论优先级都增加 chat
"""

from angkor.core.models import Channel, NotificationType, Priority

PRIORITY_CHANNELS: dict[Priority, tuple[Channel, ...]] = {
    Priority.LOW: (Channel.IN_APP,),
    Priority.MEDIUM: (Channel.IN_APP, Channel.EMAIL),
    Priority.HIGH: (Channel.IN_APP, Channel.EMAIL, Channel.SMS),
}

TYPE_CHANNELS: dict[NotificationType, tuple[Channel, ...]] = {
    NotificationType.GRIEVANCE_UPDATE: (Channel.CHAT,),
    NotificationType.CRITICAL_ALERT: (Channel.CHAT,),
}


def select_channels(priority: Priority, notification_type: NotificationType) -> list[Channel]:
    """按优先级与类型选出投递渠道（保序、无重复）"""
    channels = [*PRIORITY_CHANNELS[priority], *TYPE_CHANNELS.get(notification_type, ())]
    return list(dict.fromkeys(channels))
