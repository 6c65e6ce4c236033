"""
relaybot模块的入口点

当使用 `python -m relaybot` 命令运行relaybot时，会执行此文件。
它导入并启动CLI应用程序。
"""

from relaybot.cli.commands import app

if __name__ == "__main__":
    app()
