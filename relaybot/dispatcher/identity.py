"""机器人身份：登录后得到的显示名称。"""

from loguru import logger

from relaybot.errors import IdentityError


class BotIdentity:
    """
    只能设置一次的机器人显示名称。

    启动时为空，登录成功后由渠道设置，之后在进程生命周期内保持不变。
    由构造函数注入到需要它的组件中，而不是作为全局变量。
    """

    def __init__(self, display_name: str | None = None):
        self._display_name = display_name or None

    @property
    def display_name(self) -> str | None:
        return self._display_name

    @property
    def is_set(self) -> bool:
        return self._display_name is not None

    def set(self, display_name: str) -> None:
        """
        设置显示名称。

        同一名称重复设置（例如断线重连后再次登录）会被忽略。

        Raises:
            IdentityError: 名称为空，或已设置为另一个名称
        """
        if not display_name:
            raise IdentityError("Bot display name must not be empty")
        if self._display_name == display_name:
            return
        if self._display_name is not None:
            raise IdentityError(
                f"Bot identity already set to {self._display_name!r}, refusing {display_name!r}"
            )
        self._display_name = display_name
        logger.info(f"Bot identity set: {display_name}")

    def __repr__(self) -> str:
        return f"BotIdentity({self._display_name!r})"
