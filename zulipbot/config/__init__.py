"""模块说明：配置。"""

from zulipbot.config.loader import load_config, load_credentials, resolve_accounts
from zulipbot.config.schema import Config, PollConfig, ZulipAccountConfig, ZulipConfig

__all__ = [
    "Config",
    "PollConfig",
    "ZulipAccountConfig",
    "ZulipConfig",
    "load_config",
    "load_credentials",
    "resolve_accounts",
]
