"""状态机流转单元测试

测试内容：
1. 任务合法 / 非法流转
2. 终态不可再流转
3. 通知状态机：pending -> sent|failed，sent -> read
"""

import pytest
from angkor.core.models.enums import (
    NOTIFICATION_TRANSITIONS,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    NotificationStatus,
    TaskStatus,
    validate_notification_transition,
    validate_transition,
)


class TestTaskStateMachine:
    """任务状态机流转验证"""

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (TaskStatus.PENDING, TaskStatus.IN_PROGRESS),
            (TaskStatus.PENDING, TaskStatus.CANCELLED),
            (TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED),
            (TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED),
        ],
    )
    def test_valid_transition(self, from_status: TaskStatus, to_status: TaskStatus):
        """合法流转应通过验证"""
        assert validate_transition(from_status, to_status) is True

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (TaskStatus.PENDING, TaskStatus.COMPLETED),
            (TaskStatus.PENDING, TaskStatus.PENDING),
            (TaskStatus.IN_PROGRESS, TaskStatus.PENDING),
            (TaskStatus.COMPLETED, TaskStatus.IN_PROGRESS),
            (TaskStatus.CANCELLED, TaskStatus.PENDING),
        ],
    )
    def test_invalid_transition(self, from_status: TaskStatus, to_status: TaskStatus):
        """非法流转应被拒绝"""
        assert validate_transition(from_status, to_status) is False

    def test_all_terminal_states_cannot_transition(self):
        """所有终态都不能再流转"""
        for terminal in TERMINAL_STATES:
            for target in TaskStatus:
                assert validate_transition(terminal, target) is False, (
                    f"终态 {terminal} 不应能流转到 {target}"
                )

    def test_valid_transitions_completeness(self):
        """VALID_TRANSITIONS 覆盖所有任务状态"""
        for state in TaskStatus:
            assert state in VALID_TRANSITIONS, f"{state} 未在 VALID_TRANSITIONS 中定义"


class TestNotificationStateMachine:
    """通知状态机流转验证"""

    @pytest.mark.parametrize(
        "from_status,to_status,expected",
        [
            (NotificationStatus.PENDING, NotificationStatus.SENT, True),
            (NotificationStatus.PENDING, NotificationStatus.FAILED, True),
            (NotificationStatus.SENT, NotificationStatus.READ, True),
            (NotificationStatus.PENDING, NotificationStatus.READ, False),
            (NotificationStatus.FAILED, NotificationStatus.READ, False),
            (NotificationStatus.FAILED, NotificationStatus.PENDING, False),
            (NotificationStatus.READ, NotificationStatus.SENT, False),
        ],
    )
    def test_notification_transition(self, from_status, to_status, expected):
        assert validate_notification_transition(from_status, to_status) is expected

    def test_failed_is_final(self):
        """失败后不自动重投"""
        assert NOTIFICATION_TRANSITIONS[NotificationStatus.FAILED] == set()
