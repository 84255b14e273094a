"""ServiceGroup -- 组装编排服务并重建缓存

所有服务共享同一个 DocumentStore 与 DomainEventBus；
缓存不是事实来源，启动时从存储重建后再补发未分发的 outbox 记录。
"""

from angkor.channels import CalendarSyncAdapter, ChannelGateway
from angkor.core.repository import rebuild_all
from angkor.core.store import DocumentStore

from .calendar_service import CalendarEventManager
from .communication_service import CommunicationThreadManager
from .event_bus import DomainEventBus
from .fanout import NotificationFanout
from .notification_feed import NotificationFeed
from .notification_service import NotificationDispatcher
from .recurrence_service import RecurringTaskGenerator
from .report_service import ReportingAggregator
from .task_service import TaskRegistry


class ServiceGroup:
    """服务实例组"""

    def __init__(
        self,
        store: DocumentStore,
        channels: ChannelGateway,
        calendar_sync: CalendarSyncAdapter,
    ) -> None:
        self.store = store
        self.bus = DomainEventBus(store)
        self.notifications = NotificationDispatcher(store, channels)
        self.fanout = NotificationFanout(self.notifications)
        self.fanout.register(self.bus)

        self.tasks = TaskRegistry(store, self.bus)
        self.recurrence = RecurringTaskGenerator(self.tasks)
        self.calendar = CalendarEventManager(store, self.bus, calendar_sync)
        self.communications = CommunicationThreadManager(store, self.bus)
        self.reports = ReportingAggregator(self.tasks)
        self.feed = NotificationFeed(store)

    @property
    def repositories(self) -> list:
        return [
            self.bus.events,
            self.notifications.notifications,
            self.tasks.tasks,
            self.calendar.events,
            self.communications.communications,
        ]


async def create_service_group(
    store: DocumentStore,
    channels: ChannelGateway,
    calendar_sync: CalendarSyncAdapter,
) -> ServiceGroup:
    """创建服务组：重建全部缓存，补发 pending outbox 记录

    Args:
        store: DocumentStore 实例
        channels: 渠道网关
        calendar_sync: 外部日历同步适配器

    Returns:
        ServiceGroup 实例
    """
    services = ServiceGroup(store, channels, calendar_sync)
    await rebuild_all(store, services.repositories)
    await services.bus.dispatch_pending()
    return services
