"""relaybot的CLI命令。"""

import asyncio
import sys
from datetime import datetime

import click
from loguru import logger
from rich.console import Console
from rich.table import Table

from relaybot import __logo__, __version__
from relaybot.config.schema import Config

console = Console()


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="relaybot")
@click.pass_context
def app(ctx):
    """relaybot - 把微信消息转发给大语言模型的中继机器人"""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def _configure_logging(verbose: bool) -> None:
    """重新配置loguru输出级别。"""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def _log_login_summary(config: Config, name: str) -> None:
    """登录成功后打印当前的触发和屏蔽设置。"""
    trigger = config.trigger
    logger.info(f"{name} 已上线")
    logger.info(f"私聊触发关键词: {trigger.private_trigger_keyword}")
    logger.info(f"已设置 {len(trigger.block_words)} 个聊天关键词屏蔽. {','.join(trigger.block_words)}")
    logger.info(
        f"已设置 {len(trigger.chatgpt_block_words)} 个ChatGPT回复关键词屏蔽. "
        f"{','.join(trigger.chatgpt_block_words)}"
    )


# ============================================================================
# Onboard / Setup
# ============================================================================


@app.command()
def onboard():
    """初始化relaybot配置。"""
    from relaybot.config.loader import get_config_path, save_config
    from relaybot.utils.helpers import get_data_path, get_media_path, get_sessions_path

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not click.confirm("Overwrite?"):
            raise click.exceptions.Exit(0)

    config = Config()
    save_config(config, config_path)
    console.print(f"[green]✓[/green] Created config at {config_path}")

    get_sessions_path()
    get_media_path()
    console.print(f"[green]✓[/green] Created data directory at {get_data_path()}")

    console.print(f"\n{__logo__} relaybot is ready!")
    console.print("\nNext steps:")
    console.print("  1. Add your API key to [cyan]~/.relaybot/config.json[/cyan]")
    console.print("     Get one at: https://platform.openai.com/api-keys")
    console.print("  2. Start the WeChat bridge, then: [cyan]relaybot gateway[/cyan]")


# ============================================================================
# Gateway
# ============================================================================


def _make_provider(config: Config):
    """根据配置创建LiteLLMProvider。"""
    from relaybot.providers.litellm_provider import LiteLLMProvider

    p = config.get_provider()
    model = config.agents.defaults.model
    if not (p and p.api_key):
        console.print("[red]Error: No API key configured.[/red]")
        console.print("Set one in ~/.relaybot/config.json under providers section")
        raise click.exceptions.Exit(1)
    return LiteLLMProvider(
        api_key=p.api_key,
        api_base=config.get_api_base(model),
        default_model=model,
        extra_headers=p.extra_headers,
        provider_name=config.get_provider_name(model),
    )


def _make_transcriber(config: Config):
    """根据配置创建语音转录提供者，没有可用提供者时返回None。"""
    from relaybot.providers.transcription import WhisperTranscriptionProvider

    p, name = config.get_transcription_provider()
    if not p:
        logger.warning("No transcription provider configured, audio messages will be dropped")
        return None
    return WhisperTranscriptionProvider(
        api_key=p.api_key,
        provider_name=name,
        model=config.agents.defaults.transcription_model or None,
    )


@app.command()
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def gateway(verbose):
    """启动relaybot网关（微信桥接 + 分发循环）。"""
    from relaybot.bus.queue import MessageBus
    from relaybot.channels.manager import ChannelManager
    from relaybot.config.loader import get_config_path, load_config
    from relaybot.dispatcher.identity import BotIdentity
    from relaybot.dispatcher.loop import DispatchLoop
    from relaybot.dispatcher.router import Dispatcher
    from relaybot.errors import ConfigError
    from relaybot.providers.backend import LanguageModelBackend
    from relaybot.session.manager import SessionManager
    from relaybot.utils.media import MediaStore

    _configure_logging(verbose)

    console.print(f"{__logo__} Starting relaybot gateway...")

    config = load_config()
    if not get_config_path().exists():
        logger.warning("No config file found, using defaults (run `relaybot onboard` first)")

    bus = MessageBus()
    sessions = SessionManager()
    backend = LanguageModelBackend(
        provider=_make_provider(config),
        sessions=sessions,
        transcriber=_make_transcriber(config),
        defaults=config.agents.defaults,
    )
    identity = BotIdentity()
    channels = ChannelManager(
        config,
        bus,
        identity,
        on_login=lambda name: _log_login_summary(config, name),
    )

    try:
        dispatcher = Dispatcher.from_config(
            config,
            identity,
            backend,
            sessions,
            MediaStore(),
            send_callback=channels.send,
        )
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.exceptions.Exit(1)

    loop = DispatchLoop(
        bus,
        dispatcher,
        serialize_per_conversation=config.reply.serialize_per_conversation,
        started_at=datetime.now(),
    )

    if channels.enabled_channels:
        console.print(f"[green]✓[/green] Channels enabled: {', '.join(channels.enabled_channels)}")
    else:
        console.print("[yellow]Warning: No channels enabled[/yellow]")

    async def run():
        try:
            await asyncio.gather(
                loop.run(),
                channels.start_all(),
            )
        except KeyboardInterrupt:
            console.print("\nShutting down...")
        finally:
            loop.stop()
            await channels.stop_all()
            await loop.drain()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\nShutting down...")


# ============================================================================
# Status
# ============================================================================


@app.command()
def status():
    """显示relaybot状态。"""
    from relaybot.config.loader import get_config_path, load_config
    from relaybot.providers.registry import PROVIDERS
    from relaybot.session.manager import SessionManager

    config_path = get_config_path()
    config = load_config()

    table = Table(title=f"{__logo__} relaybot Status v{__version__}", show_header=False, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")

    table.add_row(
        "Config",
        f"{config_path} [green]✓[/green]" if config_path.exists() else f"{config_path} [red]✗[/red]",
    )
    table.add_row("Model", config.agents.defaults.model)
    table.add_row("Image model", config.agents.defaults.image_model)

    wechat = config.channels.wechat
    table.add_row(
        "WeChat",
        f"[green]✓[/green] {wechat.bridge_url}" if wechat.enabled else "[dim]disabled[/dim]",
    )

    trigger = config.trigger
    table.add_row("Private keyword", trigger.private_trigger_keyword or "[dim]none[/dim]")
    table.add_row("Trigger rule", trigger.trigger_rule or "[dim]none[/dim]")
    table.add_row("Group replies", "[dim]disabled[/dim]" if trigger.disable_group_message else "enabled")
    table.add_row("Block words", str(len(trigger.block_words)))
    table.add_row("Reply block words", str(len(trigger.chatgpt_block_words)))

    for spec in PROVIDERS:
        p = getattr(config.providers, spec.name, None)
        if p is None:
            continue
        if p.api_key:
            table.add_row(spec.label, "[green]✓[/green]")
        else:
            table.add_row(spec.label, "[dim]not set[/dim]")

    _, transcription = config.get_transcription_provider()
    table.add_row("Transcription", transcription or "[dim]not set[/dim]")
    table.add_row("Sessions", str(len(SessionManager().list_sessions())))

    console.print(table)
