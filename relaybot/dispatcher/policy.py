"""协作方调用的失败策略表。

对话和画图失败时回复兜底消息；保存语音和语音转录失败时只记录日志。
所有调用点都通过invoke()查表，不在调用点各自决定。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

from loguru import logger


class CollaboratorCall(str, Enum):
    """分发器发起的协作方调用。"""

    COMPLETE = "complete"
    GENERATE_IMAGE = "generate_image"
    SAVE_AUDIO = "save_audio"
    TRANSCRIBE = "transcribe"


class OnFailure(str, Enum):
    """失败（抛出异常或返回空结果）时的处理方式。"""

    FALLBACK_REPLY = "fallback_reply"
    DROP = "drop"


FAILURE_POLICIES: dict[CollaboratorCall, OnFailure] = {
    CollaboratorCall.COMPLETE: OnFailure.FALLBACK_REPLY,
    CollaboratorCall.GENERATE_IMAGE: OnFailure.FALLBACK_REPLY,
    CollaboratorCall.SAVE_AUDIO: OnFailure.DROP,
    CollaboratorCall.TRANSCRIBE: OnFailure.DROP,
}


@dataclass(frozen=True)
class CallOutcome:
    """一次协作方调用的结果。"""

    call: CollaboratorCall
    value: Any = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.value)

    @property
    def on_failure(self) -> OnFailure:
        return FAILURE_POLICIES[self.call]


async def invoke(
    call: CollaboratorCall,
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
) -> CallOutcome:
    """
    调用协作方并把异常和空结果统一转换为失败的CallOutcome。

    Args:
        call: 调用类型（用于查找失败策略）
        fn: 异步函数
        *args: 调用参数

    Returns:
        CallOutcome
    """
    try:
        value = await fn(*args)
    except Exception as e:
        logger.error(f"{call.value} failed ({FAILURE_POLICIES[call].value}): {e}")
        return CallOutcome(call, error=e)

    outcome = CallOutcome(call, value=value)
    if not outcome.ok:
        logger.error(f"{call.value} returned an empty result ({outcome.on_failure.value})")
    return outcome
