"""Domain models for the Slack bot."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Tuple


class ConnectionState(IntEnum):
    DISCONNECTED = 0
    CONNECTING = 1
    CONNECTED = 2
    ESTABLISHED = 3
    DISCONNECTING = 4


class MessageSubtype(str, Enum):
    MESSAGE = "message"
    BOT_MESSAGE = "bot_message"
    ME_MESSAGE = "me_message"
    MESSAGE_CHANGED = "message_changed"
    MESSAGE_DELETED = "message_deleted"
    MESSAGE_REPLIED = "message_replied"
    CHANNEL_JOIN = "channel_join"
    CHANNEL_LEAVE = "channel_leave"
    CHANNEL_TOPIC = "channel_topic"
    FILE_SHARE = "file_share"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "MessageSubtype":
        """Map a Slack ``subtype`` field to a member; unknown values become OTHER."""
        if not raw:
            return cls.MESSAGE
        try:
            return cls(raw)
        except ValueError:
            return cls.OTHER


class SinkResult(Enum):
    CONTINUE = "continue"
    COMPLETE = "complete"


@dataclass(frozen=True)
class AttachmentField:
    title: str
    value: str
    short: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "value": self.value, "short": self.short}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AttachmentField":
        return cls(
            title=str(data.get("title") or ""),
            value=str(data.get("value") or ""),
            short=bool(data.get("short", True)),
        )


@dataclass(frozen=True)
class Attachment:
    fallback: str
    color: Optional[str] = None
    title: Optional[str] = None
    title_link: Optional[str] = None
    text: Optional[str] = None
    image_url: Optional[str] = None
    fields: Tuple[AttachmentField, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Render the attachment in the shape ``chat.postMessage`` expects."""
        payload: Dict[str, Any] = {"fallback": self.fallback}
        for key in ("color", "title", "title_link", "text", "image_url"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        if self.fields:
            payload["fields"] = [item.to_dict() for item in self.fields]
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Attachment":
        return cls(
            fallback=str(data.get("fallback") or ""),
            color=data.get("color"),
            title=data.get("title"),
            title_link=data.get("title_link"),
            text=data.get("text"),
            image_url=data.get("image_url"),
            fields=tuple(AttachmentField.from_dict(item) for item in data.get("fields") or ()),
        )


@dataclass(frozen=True)
class Message:
    channel: str
    text: str = ""
    user: Optional[str] = None
    subtype: MessageSubtype = MessageSubtype.MESSAGE
    hidden: bool = False
    attachments: Tuple[Attachment, ...] = field(default_factory=tuple)
    ts: Optional[str] = None
    thread_ts: Optional[str] = None

    def create_reply(self, text: str, attachments: Tuple[Attachment, ...] = ()) -> "Message":
        """Build a bot reply addressed to the channel this message came from."""
        return Message(
            channel=self.channel,
            text=text,
            subtype=MessageSubtype.BOT_MESSAGE,
            attachments=tuple(attachments),
            thread_ts=self.thread_ts,
        )

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"channel": self.channel, "text": self.text}
        if self.attachments:
            payload["attachments"] = [item.to_dict() for item in self.attachments]
        if self.thread_ts:
            payload["thread_ts"] = self.thread_ts
        return payload

    @classmethod
    def from_event(cls, event: Dict[str, Any]) -> "Message":
        """Decode an RTM ``message`` frame."""
        subtype = MessageSubtype.parse(event.get("subtype"))
        # Bot posts made through chat.postMessage may arrive without a subtype.
        if subtype is MessageSubtype.MESSAGE and event.get("bot_id"):
            subtype = MessageSubtype.BOT_MESSAGE
        return cls(
            channel=str(event.get("channel") or ""),
            text=event.get("text") or "",
            user=event.get("user"),
            subtype=subtype,
            hidden=bool(event.get("hidden", False)),
            attachments=tuple(Attachment.from_dict(item) for item in event.get("attachments") or ()),
            ts=event.get("ts"),
            thread_ts=event.get("thread_ts"),
        )
