"""Communication（线程消息）Domain Model

创建时 mentions 中每个 ID 恰好收到一条 mention 通知；
回复只追加、不删除。
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import UTCDateTime, new_id


class Reply(BaseModel):
    """线程回复"""

    reply_id: str = Field(default_factory=new_id)
    author: str = Field(default="")
    body: str
    created_at: UTCDateTime


class ReplyDraft(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    author: str = Field(default="")
    body: str = Field(min_length=1)


class CommunicationDraft(BaseModel):
    """创建线程的输入字段"""

    model_config = ConfigDict(str_strip_whitespace=True)

    subject: str = Field(min_length=1)
    body: str = Field(default="")
    author: str = Field(default="")
    mentions: list[str] = Field(default_factory=list)
    attachments: list[str] = Field(default_factory=list)
    factory_id: str = Field(default="")

    @field_validator("mentions")
    @classmethod
    def _dedupe_mentions(cls, value: list[str]) -> list[str]:
        # 保序去重，保证每个被提及者只收到一条通知
        return list(dict.fromkeys(v for v in value if v))


class Communication(BaseModel):
    """Communication 数据模型"""

    communication_id: str = Field(description="唯一标识，ULID 格式")
    subject: str
    body: str = Field(default="")
    author: str = Field(default="")
    mentions: list[str] = Field(default_factory=list)
    replies: list[Reply] = Field(default_factory=list)
    attachments: list[str] = Field(default_factory=list)
    factory_id: str = Field(default="")
    created_at: UTCDateTime
    updated_at: UTCDateTime
