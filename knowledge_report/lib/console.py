"""Console utilities for safe character output.

This module provides utilities for printing the Japanese report text on
terminals whose encoding cannot represent it.
"""
import sys
from typing import Any


def safe_echo(message: Any, **kwargs) -> None:
    """
    安全にメッセージを出力する.

    Args:
        message: 出力するメッセージ
        **kwargs: print に渡す追加の引数
    """
    try:
        print(message, **kwargs)
    except UnicodeEncodeError:
        if isinstance(message, str):
            safe_message = message.encode("ascii", "replace").decode("ascii")
            print(f"[ENCODING_ISSUE] {safe_message}", **kwargs)
        else:
            print(f"[OUTPUT] {message!r}", **kwargs)


def setup_console_encoding() -> None:
    """Switch stdout/stderr to UTF-8 where the stream supports it."""
    for stream in (sys.stdout, sys.stderr):
        encoding = (getattr(stream, "encoding", None) or "").lower()
        if encoding.replace("-", "") == "utf8":
            continue
        if hasattr(stream, "reconfigure"):
            try:
                stream.reconfigure(encoding="utf-8")
            except ValueError:
                # 既に書き込み済みのストリームは変更できない
                continue


MESSAGES = {
    "report_start": "レポートを作成します",
    "login": "ログインします",
    "dry_run": "ドライラン: ファイルは出力しません",
    "config_show": "設定を表示します",
}


def echo_with_prefix(prefix: str, message: str) -> None:
    """
    接頭辞付きでメッセージを出力する.

    Args:
        prefix: 接頭辞 (REPORT, CONFIG など)
        message: メッセージキー、またはそのまま出力する文字列
    """
    text = MESSAGES.get(message, message)
    safe_echo(f"[{prefix}] {text}")
