"""SessionContext -- 当前用户/租户上下文

由外部认证层提供，本模块只消费 user_id 与 factory_id 两个字段。
"""

from pydantic import BaseModel, Field


class SessionContext(BaseModel):
    """当前会话上下文"""

    user_id: str = Field(description="当前用户 ID")
    factory_id: str = Field(description="租户（工厂）ID，所有实体的隔离键")
    display_name: str = Field(default="", description="显示名称")
