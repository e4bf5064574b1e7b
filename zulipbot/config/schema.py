"""模块说明：schema。"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ZulipAccountConfig(BaseModel):
    """单个 Zulip 机器人账号。"""
    enabled: bool = True
    name: str = "Zulip Bot"
    email: str = ""  # Bot email from the Zulip "Bots" settings page
    api_key: str = ""
    site: str = ""  # e.g. "https://example.zulipchat.com"
    allow_from: list[str] = Field(default_factory=list)  # Allowed sender emails or user IDs

    @property
    def is_configured(self) -> bool:
        """函数说明：is_configured。"""
        return bool(self.email and self.api_key and self.site)


class PollConfig(BaseModel):
    """事件队列轮询参数。"""
    event_types: list[str] = Field(default_factory=lambda: ["message", "reaction"])
    long_poll_timeout_s: float = 90.0  # 必须大于服务端长轮询的最长挂起时间
    retry_backoff_s: float = 5.0
    request_timeout_s: float = 30.0
    context_limit: int = 20  # 0 表示不回填上下文
    context_timeout_s: float = 10.0


class ZulipConfig(BaseModel):
    """类说明：ZulipConfig。"""
    enabled: bool = False
    accounts: dict[str, ZulipAccountConfig] = Field(default_factory=dict)
    credentials_file: str = "~/.zulipbot/secrets/zulip.env"
    default_topic: str = "chat"
    forward_reactions: bool = True
    poll: PollConfig = Field(default_factory=PollConfig)


class ChannelsConfig(BaseModel):
    """类说明：ChannelsConfig。"""
    zulip: ZulipConfig = Field(default_factory=ZulipConfig)


class AgentDefaults(BaseModel):
    """回复管线的默认路由。"""
    agent_id: str = "main"


class Config(BaseSettings):
    """类说明：Config。"""
    model_config = SettingsConfigDict(env_prefix="ZULIPBOT_", env_nested_delimiter="__")

    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)
    agent: AgentDefaults = Field(default_factory=AgentDefaults)
