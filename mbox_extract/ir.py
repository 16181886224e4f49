"""
中间表示模块 (Intermediate Representation Module)
================================================

定义 mbox 提取流程中的核心数据结构：MessageBlock、MessageRecord、
IdentityConfig、AssemblyResult 与 RunStats。
"""

from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from pydantic import BaseModel, Field, field_serializer, field_validator

NO_SUBJECT = "(No Subject)"
NO_SENDER = "(No Sender)"
NO_RECIPIENT = "(No Recipient)"


class DropReason(str, Enum):
    """
    消息块被丢弃的原因枚举。
    """
    HEADER_BOUNDARY = "header_boundary"
    MISSING_REQUIRED = "missing_required"
    SELF_EMAIL = "self_email"
    PARSE_ERROR = "parse_error"


class MessageBlock(BaseModel):
    """
    消息块：输入流中被认为包含一封邮件的不可变切片（含开头的 ``From `` 分隔行）。

    属性:
        index: 在切分顺序中的位置（从 0 开始）
        text: 原始文本
    """
    index: int
    text: str

    class Config:
        frozen = True


class MessageRecord(BaseModel):
    """
    邮件记录：引擎的输出单元，构造后不可变。

    属性:
        index: 来源消息块在切分顺序中的位置，供下游稳定编号
        subject / sender / to / message_id: 缺失时使用占位值
        date: 原始 Date 头
        parsed_date: 解析后的时区感知时间；无法解析时为 None
        body: 解码后的正文
        headers: 全部邮件头（保持原始顺序与大小写，只读映射）
    """
    index: int = 0
    subject: str = NO_SUBJECT
    sender: str = Field(default=NO_SENDER, alias="from")
    to: str = NO_RECIPIENT
    date: str = ""
    parsed_date: Optional[datetime] = None
    message_id: str = ""
    body: str = ""
    headers: Mapping[str, str] = Field(default_factory=dict, validate_default=True)

    class Config:
        frozen = True
        populate_by_name = True

    @field_validator("headers", mode="after")
    @classmethod
    def _freeze_headers(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(v))

    @field_serializer("headers")
    def _serialize_headers(self, v: Mapping[str, str]) -> dict:
        return dict(v)

    def header(self, name: str, default: str = "") -> str:
        """按名称（大小写不敏感）读取邮件头，精确匹配优先。"""
        if name in self.headers:
            return self.headers[name]
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def to_dict(self) -> dict:
        """转换为字典，``sender`` 以 ``from`` 键输出。"""
        return self.model_dump(by_alias=True)


class IdentityConfig(BaseModel):
    """
    身份配置：三组大小写不敏感的字符串片段，引擎生命周期内只读。

    属性:
        ignored_senders: 需要忽略的发件人片段（自动通知、退信等）
        my_addresses: 本人邮箱地址片段
        my_names: 本人姓名片段
    """
    ignored_senders: Tuple[str, ...] = ()
    my_addresses: Tuple[str, ...] = ()
    my_names: Tuple[str, ...] = ()

    class Config:
        frozen = True

    @field_validator("ignored_senders", "my_addresses", "my_names", mode="before")
    @classmethod
    def clean_fragments(cls, v):
        """去除空白项与非字符串项，保持原有顺序并去重。"""
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        out = []
        for item in v:
            if isinstance(item, str) and item.strip() and item.strip() not in out:
                out.append(item.strip())
        return tuple(out)

    def merged(self, other: "IdentityConfig") -> "IdentityConfig":
        """合并两份身份配置（本配置的片段在前）。"""
        return IdentityConfig(
            ignored_senders=self.ignored_senders + other.ignored_senders,
            my_addresses=self.my_addresses + other.my_addresses,
            my_names=self.my_names + other.my_names,
        )


class AssemblyResult(BaseModel):
    """
    单个消息块的组装结果：成功时携带 record，丢弃时携带 reason。
    """
    block_index: int
    record: Optional[MessageRecord] = None
    reason: Optional[DropReason] = None

    @property
    def kept(self) -> bool:
        return self.record is not None


@dataclass
class RunStats:
    """
    运行计数器。仅由消费结果的线程更新（并行时通过 merge 归并）。

    属性:
        total: 处理的消息块总数
        header_failures: 无法定位邮件头的块数
        missing_required: 缺少 From/To 的块数
        self_excluded: 被自邮件/忽略规则排除的块数
        errors: 处理时发生意外异常的块数
        emitted: 成功输出的记录数
    """
    total: int = 0
    header_failures: int = 0
    missing_required: int = 0
    self_excluded: int = 0
    errors: int = 0
    emitted: int = 0

    @property
    def dropped_unparseable(self) -> int:
        return self.header_failures + self.missing_required + self.errors

    def record(self, result: AssemblyResult) -> None:
        """根据单个组装结果更新计数。"""
        self.total += 1
        if result.record is not None:
            self.emitted += 1
        elif result.reason == DropReason.HEADER_BOUNDARY:
            self.header_failures += 1
        elif result.reason == DropReason.MISSING_REQUIRED:
            self.missing_required += 1
        elif result.reason == DropReason.SELF_EMAIL:
            self.self_excluded += 1
        else:
            self.errors += 1

    def merge(self, other: "RunStats") -> "RunStats":
        """归并另一组计数，返回 self。"""
        for f in fields(self):
            setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))
        return self

    def to_dict(self) -> dict:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["dropped_unparseable"] = self.dropped_unparseable
        return data
