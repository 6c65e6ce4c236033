"""
本地直接启动 relaybot 的入口脚本。

用法示例（在项目根目录运行）：

    python run.py onboard
    python run.py gateway
    python run.py gateway --verbose
    python run.py status
"""

from relaybot.cli.commands import app


if __name__ == "__main__":
    app()
