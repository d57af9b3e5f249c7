"""Configuration module for toolbridge using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class ToolBridgeSettings(BaseSettings):
    """Main configuration settings for toolbridge.

    All settings can be overridden via environment variables with the
    TOOLBRIDGE_ prefix, or from a local .env file. For example,
    TOOLBRIDGE_OLLAMA_HOST will override the ollama_host setting.
    """

    # Completion endpoint
    ollama_host: str = "http://localhost:11434"
    api_key: str | None = None
    model: str = "llama3.2:latest"
    max_tokens: int = 1024
    system_prompt: str | None = None

    # Orchestrator: tool round-trips allowed per turn (0 disables the bound)
    max_tool_rounds: int = 10

    # Protocol client
    handshake_timeout: float = 30.0
    max_frame_bytes: int = 16 * 1024 * 1024

    # Interactive front end
    quit_command: str = "quit"

    # Logging
    log_level: str = "WARNING"

    model_config = SettingsConfigDict(
        env_prefix="TOOLBRIDGE_",
        env_file=".env",
        extra="ignore",
    )
