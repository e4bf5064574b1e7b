"""配置加载。

`config.json` 使用 camelCase 键，加载时转换为 snake_case 再交给 pydantic 校验。
凭据文件沿用 `KEY=VALUE` 格式，作为未显式配置账号时的 `default` 账号。
"""

import json
from pathlib import Path
from typing import Any

from loguru import logger

from zulipbot.config.schema import Config, ZulipAccountConfig

DEFAULT_ACCOUNT_ID = "default"

_CREDENTIAL_KEYS = {
    "ZULIP_EMAIL": "email",
    "ZULIP_API_KEY": "api_key",
    "ZULIP_SITE": "site",
}


def get_config_path() -> Path:
    """函数说明：get_config_path。"""
    return Path.home() / ".zulipbot" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """读取配置文件；文件缺失或损坏时回退到默认配置。"""
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path) as f:
                data = json.load(f)
            return Config.model_validate(convert_keys(data))
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            logger.warning("Using default configuration.")

    return Config()


def load_credentials(path: Path | str) -> ZulipAccountConfig | None:
    """解析 `zulip.env`，三个字段齐全时返回账号配置。"""
    path = Path(path).expanduser()
    if not path.exists():
        return None

    fields: dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        key, sep, value = line.partition("=")
        if not sep:
            continue
        name = _CREDENTIAL_KEYS.get(key.strip())
        if name:
            fields[name] = value.strip()

    account = ZulipAccountConfig(**fields)
    return account if account.is_configured else None


def resolve_accounts(config: Config) -> dict[str, ZulipAccountConfig]:
    """返回所有已启用且配置完整的账号。

    配置文件里没有任何账号时，才回退到凭据文件。
    """
    zulip = config.channels.zulip
    accounts = dict(zulip.accounts)

    if not accounts:
        creds = load_credentials(zulip.credentials_file)
        if creds:
            accounts[DEFAULT_ACCOUNT_ID] = creds

    return {
        account_id: account
        for account_id, account in accounts.items()
        if account.enabled and account.is_configured
    }


def convert_keys(data: Any, keep_keys: bool = False) -> Any:
    """camelCase 键转 snake_case；`accounts` 下的账号 ID 是用户命名，原样保留。"""
    if isinstance(data, dict):
        converted = {}
        for k, v in data.items():
            if keep_keys:
                converted[k] = convert_keys(v)
            else:
                converted[camel_to_snake(k)] = convert_keys(v, keep_keys=(k == "accounts"))
        return converted
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """函数说明：camel_to_snake。"""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)
