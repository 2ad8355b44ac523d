"""Config data model.

This module defines the ReportConfig data class and default configuration values.
"""
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

from ..lib.date_format import DateFormat, assert_date_format

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ConfigKey:
    """Configuration key constants."""

    # Knowledge portal settings
    KNOWLEDGE_BASE_URL = "knowledge.base_url"
    KNOWLEDGE_USERNAME = "knowledge.username"
    KNOWLEDGE_PASSWORD = "knowledge.password"
    KNOWLEDGE_CONTEXT_PATH = "knowledge.context_path"

    # Report settings
    REPORT_TEMPLATE = "report.template"
    REPORT_OUTPUT_DIR = "report.output_dir"
    REPORT_MARKDOWN = "report.markdown"
    REPORT_MONTH = "report.month"
    REPORT_DRY_RUN = "report.dry_run"

    # Browser settings
    BROWSER_HEADLESS = "browser.headless"
    BROWSER_TIMEOUT_MS = "browser.timeout_ms"
    BROWSER_SCREENSHOT_DIR = "browser.screenshot_dir"

    # Logging settings
    LOGGING_LEVEL = "logging.level"


# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    ConfigKey.KNOWLEDGE_BASE_URL: "",  # Knowledge の URL
    ConfigKey.KNOWLEDGE_USERNAME: "",  # ログイン ID
    ConfigKey.KNOWLEDGE_PASSWORD: "",  # パスワード
    ConfigKey.KNOWLEDGE_CONTEXT_PATH: "/knowledge",  # ルート配置時のコンテキストパス
    ConfigKey.REPORT_TEMPLATE: "templates/template.sample.txt",  # テンプレートファイル
    ConfigKey.REPORT_OUTPUT_DIR: "/tmp",  # 出力先ディレクトリ
    ConfigKey.REPORT_MARKDOWN: False,  # Markdown 形式のリンク
    ConfigKey.BROWSER_HEADLESS: True,  # ヘッドレスモード
    ConfigKey.BROWSER_TIMEOUT_MS: 30000,  # ナビゲーションのタイムアウト
    ConfigKey.BROWSER_SCREENSHOT_DIR: "screenshots",  # エラー時のスクリーンショット
    ConfigKey.LOGGING_LEVEL: "INFO",  # ログレベル
}

SENSITIVE_WORDS = ("password", "key", "token", "secret")


def is_sensitive_key(key: str) -> bool:
    """Check whether a configuration key holds a secret."""
    return any(word in key.lower() for word in SENSITIVE_WORDS)


def to_bool(value: Any) -> bool:
    """Convert a configuration value to bool."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"真偽値として解釈できません: {value!r}")


def validate_config_value(key: str, value: Any) -> None:
    """Validate configuration value for specific key."""
    if key == ConfigKey.KNOWLEDGE_BASE_URL:
        if value and not re.match(r"^https?://[^\s/$.?#][^\s]*$", str(value)):
            raise ValueError("knowledge.base_url は有効な URL である必要があります")

    elif key == ConfigKey.KNOWLEDGE_CONTEXT_PATH:
        if value and not str(value).startswith("/"):
            raise ValueError("knowledge.context_path は / で始まる必要があります")

    elif key == ConfigKey.BROWSER_TIMEOUT_MS:
        if int(value) <= 0:
            raise ValueError("browser.timeout_ms は正の整数である必要があります")

    elif key == ConfigKey.LOGGING_LEVEL:
        if str(value).upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"logging.level は次のいずれかである必要があります: {VALID_LOG_LEVELS}")

    elif key in (ConfigKey.REPORT_MARKDOWN, ConfigKey.REPORT_DRY_RUN, ConfigKey.BROWSER_HEADLESS):
        to_bool(value)


@dataclass(frozen=True)
class ReportConfig:
    """実行時の設定. プロセス開始時に一度だけ構築し、各処理に明示的に渡す."""

    base_url: str
    username: str = ""
    password: str = field(default="", repr=False)
    target_month: Optional[str] = None
    template_path: Path = Path(DEFAULT_CONFIG[ConfigKey.REPORT_TEMPLATE])
    output_dir: Path = Path(DEFAULT_CONFIG[ConfigKey.REPORT_OUTPUT_DIR])
    markdown: bool = False
    dry_run: bool = False
    headless: bool = True
    log_level: str = "INFO"
    screenshot_dir: Path = Path(DEFAULT_CONFIG[ConfigKey.BROWSER_SCREENSHOT_DIR])
    context_path: str = DEFAULT_CONFIG[ConfigKey.KNOWLEDGE_CONTEXT_PATH]
    timeout_ms: int = DEFAULT_CONFIG[ConfigKey.BROWSER_TIMEOUT_MS]

    def __post_init__(self) -> None:
        """Validate config data after initialization."""
        errors = []
        checks = {
            ConfigKey.KNOWLEDGE_BASE_URL: self.base_url,
            ConfigKey.KNOWLEDGE_CONTEXT_PATH: self.context_path,
            ConfigKey.BROWSER_TIMEOUT_MS: self.timeout_ms,
            ConfigKey.LOGGING_LEVEL: self.log_level,
        }
        for key, value in checks.items():
            try:
                validate_config_value(key, value)
            except ValueError as e:
                errors.append(str(e))

        if errors:
            raise ValueError("設定の検証に失敗しました:\n" + "\n".join(errors))

        # 対象月はネットワーク処理の前に検証する
        if self.target_month is not None:
            assert_date_format(self.target_month, DateFormat.YEAR_MONTH)

    def missing_credentials(self) -> list[str]:
        """Return the names of the connection settings that are still empty."""
        missing = []
        if not self.base_url:
            missing.append("BASE_URL")
        if not self.username:
            missing.append("USERNAME")
        if not self.password:
            missing.append("PASSWORD")
        return missing

    def with_overrides(self, **changes: Any) -> "ReportConfig":
        """Return a copy with some fields replaced (validated again)."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, str]:
        """Convert config to flat dotted keys, for display."""
        return {
            ConfigKey.KNOWLEDGE_BASE_URL: self.base_url,
            ConfigKey.KNOWLEDGE_USERNAME: self.username,
            ConfigKey.KNOWLEDGE_PASSWORD: self.password,
            ConfigKey.KNOWLEDGE_CONTEXT_PATH: self.context_path,
            ConfigKey.REPORT_TEMPLATE: str(self.template_path),
            ConfigKey.REPORT_OUTPUT_DIR: str(self.output_dir),
            ConfigKey.REPORT_MARKDOWN: str(self.markdown).lower(),
            ConfigKey.BROWSER_HEADLESS: str(self.headless).lower(),
            ConfigKey.BROWSER_TIMEOUT_MS: str(self.timeout_ms),
            ConfigKey.BROWSER_SCREENSHOT_DIR: str(self.screenshot_dir),
            ConfigKey.LOGGING_LEVEL: self.log_level,
        }
