"""使用微信网页版桥接实现的微信渠道。

桥接是一个独立的Node.js进程（基于wechaty网页版协议），负责扫码登录
和收发消息。Python和桥接之间通过WebSocket交换JSON帧：

桥接 → relaybot:
  {"type": "qr", "qrcode": "...", "status": 2}
  {"type": "login", "name": "机器人名称"}
  {"type": "logout"}
  {"type": "message", "id": "...", "talker": {"id", "name", "self"},
   "room": {"id", "topic"} | null, "text": "...", "messageType": 7,
   "timestamp": 1700000000000, "audio": {"name", "data"(base64)} | null}
  {"type": "status", "status": "..."}
  {"type": "error", "error": "..."}

relaybot → 桥接:
  {"type": "send", "to": "<chat id>", "text": "..."}
  {"type": "send", "to": "<chat id>", "imageUrl": "https://..."}
"""

import asyncio
import base64
import binascii
import json
from collections import deque
from datetime import datetime
from typing import Any, Callable
from urllib.parse import quote

from loguru import logger

from relaybot.bus.events import (
    AudioAttachment,
    ConversationKind,
    InboundEvent,
    MessageType,
    OutboundMessage,
)
from relaybot.bus.queue import MessageBus
from relaybot.channels.base import BaseChannel
from relaybot.config.schema import WeChatConfig
from relaybot.dispatcher.identity import BotIdentity
from relaybot.errors import IdentityError, TransportError
from relaybot.utils.helpers import truncate_string

QR_CODE_URL = "https://wechaty.js.org/qrcode/{}"


class WeChatChannel(BaseChannel):
    """
    连接到微信网页版桥接的渠道。

    登录成功后设置BotIdentity；登录之前到达的消息会被丢弃，
    这样群聊@判断总能拿到机器人名称。支持自动重连。
    """

    name = "wechat"

    def __init__(
        self,
        config: WeChatConfig,
        bus: MessageBus,
        identity: BotIdentity,
        on_login: Callable[[str], None] | None = None,
    ):
        super().__init__(config, bus)
        self.config: WeChatConfig = config
        self.identity = identity
        self.on_login = on_login
        self._ws = None
        self._connected = False
        self._processed_ids: deque = deque(maxlen=1000)

    async def start(self) -> None:
        """
        连接到桥接并监听消息，断线后自动重连。
        """
        import websockets

        bridge_url = self.config.bridge_url
        logger.info(f"Connecting to WeChat bridge at {bridge_url}...")

        self._running = True

        while self._running:
            try:
                async with websockets.connect(bridge_url) as ws:
                    self._ws = ws
                    self._connected = True
                    logger.info("Connected to WeChat bridge")

                    async for message in ws:
                        try:
                            await self._handle_bridge_message(message)
                        except Exception as e:
                            logger.error(f"Error handling bridge message: {e}")

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.warning(f"WeChat bridge connection error: {e}")
            finally:
                self._connected = False
                self._ws = None

            if self._running:
                logger.info(f"Reconnecting in {self.config.reconnect_delay_s} seconds...")
                await asyncio.sleep(self.config.reconnect_delay_s)

    async def stop(self) -> None:
        self._running = False
        self._connected = False

        if self._ws:
            await self._ws.close()
            self._ws = None

    async def send(self, msg: OutboundMessage) -> None:
        """
        通过桥接发送消息。文本和每个图片URL各发送一帧。

        Args:
            msg: 要发送的出站消息

        Raises:
            TransportError: 桥接未连接或发送失败
        """
        if not self._ws or not self._connected:
            raise TransportError("WeChat bridge not connected")

        frames: list[dict[str, Any]] = []
        if msg.content:
            frames.append({"type": "send", "to": msg.chat_id, "text": msg.content})
        for url in msg.media:
            frames.append({"type": "send", "to": msg.chat_id, "imageUrl": url})

        for frame in frames:
            try:
                await self._ws.send(json.dumps(frame, ensure_ascii=False))
            except Exception as e:
                raise TransportError(f"Error sending WeChat message to {msg.chat_id}: {e}") from e

    async def _handle_bridge_message(self, raw: str) -> None:
        """
        处理来自桥接的一帧。

        Args:
            raw: 原始JSON字符串
        """
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON from bridge: {truncate_string(raw)}")
            return

        msg_type = data.get("type")

        if msg_type == "message":
            await self._on_message(data)

        elif msg_type == "login":
            self._on_login(data.get("name") or "")

        elif msg_type == "logout":
            logger.warning(f"WeChat user {data.get('name', '')} logged out")

        elif msg_type == "qr":
            url = QR_CODE_URL.format(quote(data.get("qrcode", ""), safe=""))
            logger.info(f"Scan QR Code to login: {data.get('status')}\n{url}")

        elif msg_type == "status":
            status = data.get("status")
            logger.info(f"WeChat status: {status}")
            if status == "connected":
                self._connected = True
            elif status == "disconnected":
                self._connected = False

        elif msg_type == "error":
            logger.error(f"WeChat bridge error: {data.get('error')}")

    def _on_login(self, name: str) -> None:
        try:
            self.identity.set(name)
        except IdentityError as e:
            logger.error(f"Ignoring login: {e}")
            return
        logger.info(f"User {name} logged in")
        if self.on_login:
            self.on_login(name)

    async def _on_message(self, data: dict[str, Any]) -> None:
        if not self.identity.is_set:
            logger.warning("Dropping message received before login")
            return

        message_id = data.get("id")
        if message_id:
            if message_id in self._processed_ids:
                return
            self._processed_ids.append(message_id)

        event = parse_message(data, channel=self.name)
        if event is None:
            logger.warning(f"Malformed message from bridge: {truncate_string(str(data))}")
            return
        await self._handle_event(event)


def parse_message(data: dict[str, Any], channel: str = "wechat") -> InboundEvent | None:
    """
    把桥接的message帧转换为InboundEvent。

    私聊的会话键和回复地址取联系人；群聊取群名称和群ID。

    Args:
        data: message帧
        channel: 渠道名称

    Returns:
        InboundEvent，缺少发送者信息时返回None
    """
    talker = data.get("talker")
    if not isinstance(talker, dict) or not talker.get("id"):
        return None

    sender_name = talker.get("name") or ""
    room = data.get("room")
    if isinstance(room, dict) and room.get("id"):
        kind = ConversationKind.GROUP
        key = room.get("topic") or ""
        chat_id = str(room["id"])
    else:
        kind = ConversationKind.DIRECT
        key = sender_name
        chat_id = str(talker["id"])

    return InboundEvent(
        channel=channel,
        sender_name=sender_name,
        conversation_kind=kind,
        conversation_key=key,
        chat_id=chat_id,
        raw_text=data.get("text") or "",
        message_type=MessageType.parse(data.get("messageType")),
        is_from_self=bool(talker.get("self", False)),
        timestamp=_parse_timestamp(data.get("timestamp")),
        audio=_parse_audio(data.get("audio")),
        metadata={"message_id": data.get("id")},
    )


def _parse_timestamp(value: Any) -> datetime:
    """桥接时间戳为毫秒；缺失或无效时使用当前时间。"""
    if isinstance(value, (int, float)) and value > 0:
        try:
            return datetime.fromtimestamp(value / 1000)
        except (OverflowError, OSError, ValueError):
            logger.warning(f"Timestamp out of range from bridge: {value}")
    return datetime.now()


def _parse_audio(value: Any) -> AudioAttachment | None:
    if not isinstance(value, dict) or not value.get("data"):
        return None
    try:
        payload = base64.b64decode(value["data"], validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Invalid base64 audio payload from bridge")
        return None
    return AudioAttachment(name=value.get("name") or "voice.mp3", data=payload)
