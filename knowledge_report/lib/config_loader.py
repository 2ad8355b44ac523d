"""Configuration loader implementation.

This module builds the single ReportConfig from defaults, a .env file,
environment variables and CLI overrides.
"""
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import dotenv_values, find_dotenv

from ..models.config import DEFAULT_CONFIG, ConfigKey, ReportConfig, to_bool, validate_config_value

logger = logging.getLogger(__name__)


class ConfigLoader:
    """設定の読み込み. 優先順位: CLI > 環境変数 > .env ファイル > 既定値."""

    # 環境変数名と設定キーの対応
    ENV_KEYS: dict[str, str] = {
        "BASE_URL": ConfigKey.KNOWLEDGE_BASE_URL,
        "USERNAME": ConfigKey.KNOWLEDGE_USERNAME,
        "PASSWORD": ConfigKey.KNOWLEDGE_PASSWORD,
    }

    def __init__(self, env_prefix: str = "KNOWLEDGE_REPORT_"):
        self.env_prefix = env_prefix
        self._config_sources: list[str] = []

    def load_from_env_file(self, env_file: Optional[Path] = None) -> dict[str, str]:
        """Read a .env file; the nearest one from the working directory by default."""
        if env_file is None:
            found = find_dotenv(usecwd=True)
            if not found:
                logger.debug(".env ファイルが見つかりません")
                return {}
            env_file = Path(found)

        if not Path(env_file).exists():
            logger.warning(f".env ファイルが存在しません: {env_file}")
            return {}

        values = {key: value for key, value in dotenv_values(env_file).items() if value is not None}
        self._config_sources.append(f"file:{env_file}")
        return self._map_env(values)

    def load_from_environment(self, environ: Optional[Mapping[str, str]] = None) -> dict[str, str]:
        environ = os.environ if environ is None else environ
        config = self._map_env(environ)
        if config:
            self._config_sources.append("environment")
        return config

    def _map_env(self, values: Mapping[str, str]) -> dict[str, str]:
        config: dict[str, str] = {}

        # 接頭辞なしの名前 (BASE_URL など) を先に読み、接頭辞付きで上書きする
        for env_key, config_key in self.ENV_KEYS.items():
            if env_key in values:
                config[config_key] = values[env_key]

        for env_key, value in values.items():
            if env_key.startswith(self.env_prefix):
                config[self._env_to_config_key(env_key)] = value

        return config

    def _env_to_config_key(self, env_key: str) -> str:
        """KNOWLEDGE_REPORT_BROWSER_TIMEOUT_MS -> browser.timeout_ms"""
        key = env_key[len(self.env_prefix):].lower()
        if key.upper() in self.ENV_KEYS:
            return self.ENV_KEYS[key.upper()]

        section, _, name = key.partition("_")
        return f"{section}.{name}" if name else key

    def load_config(
        self,
        env_file: Optional[Path] = None,
        overrides: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
        use_env_file: bool = True,
    ) -> ReportConfig:
        """
        設定を読み込み、検証済みの ReportConfig を返す.

        Args:
            env_file: .env ファイルのパス (省略時は探索する)
            overrides: CLI で指定された値 (None の項目は無視)
            environ: 環境変数 (テスト用, 省略時は os.environ)
            use_env_file: .env ファイルを読むか

        Raises:
            ValueError: 設定値が不正な場合
        """
        self._config_sources = ["defaults"]
        merged: dict[str, Any] = dict(DEFAULT_CONFIG)

        if use_env_file:
            merged.update(self.load_from_env_file(env_file))
        merged.update(self.load_from_environment(environ))

        cli_values = {key: value for key, value in (overrides or {}).items() if value is not None}
        if cli_values:
            merged.update(cli_values)
            self._config_sources.append("cli")

        errors = []
        for key, value in merged.items():
            try:
                validate_config_value(key, value)
            except ValueError as e:
                errors.append(f"{key}: {e}")
        if errors:
            error_message = "設定の検証に失敗しました:\n" + "\n".join(errors)
            logger.error(error_message)
            raise ValueError(error_message)

        config = ReportConfig(
            base_url=str(merged[ConfigKey.KNOWLEDGE_BASE_URL]),
            username=str(merged[ConfigKey.KNOWLEDGE_USERNAME]),
            password=str(merged[ConfigKey.KNOWLEDGE_PASSWORD]),
            target_month=merged.get(ConfigKey.REPORT_MONTH),
            template_path=Path(merged[ConfigKey.REPORT_TEMPLATE]),
            output_dir=Path(merged[ConfigKey.REPORT_OUTPUT_DIR]),
            markdown=to_bool(merged[ConfigKey.REPORT_MARKDOWN]),
            dry_run=to_bool(merged.get(ConfigKey.REPORT_DRY_RUN, False)),
            headless=to_bool(merged[ConfigKey.BROWSER_HEADLESS]),
            log_level=str(merged[ConfigKey.LOGGING_LEVEL]).upper(),
            screenshot_dir=Path(merged[ConfigKey.BROWSER_SCREENSHOT_DIR]),
            context_path=str(merged[ConfigKey.KNOWLEDGE_CONTEXT_PATH]),
            timeout_ms=int(merged[ConfigKey.BROWSER_TIMEOUT_MS]),
        )

        logger.info(f"設定の読み込み完了、読み込み元: {', '.join(self._config_sources)}")
        return config

    def get_config_sources(self) -> list[str]:
        """取得した設定の読み込み元."""
        return self._config_sources.copy()
