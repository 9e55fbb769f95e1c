from __future__ import annotations

"""Configuration parsing for jutge-submit client.conf files.

Only the `[client]` section is read; environment variables may override the
endpoint URLs and the credential file location.
"""

import os
import re
from dataclasses import dataclass, field

CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".jutgesubmit")
DEFAULT_CONFIG_PATH = os.path.join(CONFIG_DIR, "client.conf")
DEFAULT_CREDENTIALS_PATH = os.path.join(CONFIG_DIR, "credentials.properties")

DEFAULT_API_URL = "https://api.jutge.org/api"
DEFAULT_LOGIN_URL = "https://api.jutge.org/api/login"
DEFAULT_PROBLEMS_URL = "https://jutge.org/problems"
DEFAULT_COMPILER_ID = "Verilog"
DEFAULT_REQUEST_TIMEOUT = 30.0


@dataclass
class JutgeClientConfig:
    """Endpoint and persistence settings loaded from client.conf."""

    api_url: str = DEFAULT_API_URL
    login_url: str = DEFAULT_LOGIN_URL
    problems_url: str = DEFAULT_PROBLEMS_URL
    compiler_id: str = DEFAULT_COMPILER_ID
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    credentials_path: str = field(default=DEFAULT_CREDENTIALS_PATH)


def _strip_comments(record: str) -> str:
    """Drop inline comments while preserving leading assignment content."""
    hash_pos = record.find("#")
    if hash_pos == -1:
        return record
    # URLs may legitimately contain '#' fragments; only strip after whitespace.
    if hash_pos > 0 and not record[hash_pos - 1].isspace():
        return record
    return record[:hash_pos]


def _parse_timeout(value: str) -> float:
    timeout = float(value)
    if timeout <= 0:
        raise ValueError("requestTimeout must be positive")
    return timeout


def load_client_config(path: str = DEFAULT_CONFIG_PATH) -> JutgeClientConfig:
    """
    Parse client configuration from disk.

    A missing file yields the defaults. Unknown keys are ignored so the same
    file can carry settings for other tools.
    """

    cfg = JutgeClientConfig()
    if path and os.path.exists(path):
        _apply_config_file(cfg, path)

    env_api_url = os.environ.get("JUTGE_API_URL")
    if env_api_url:
        cfg.api_url = env_api_url
    env_login_url = os.environ.get("JUTGE_LOGIN_URL")
    if env_login_url:
        cfg.login_url = env_login_url
    env_credentials = os.environ.get("JUTGE_CREDENTIALS_PATH")
    if env_credentials:
        cfg.credentials_path = env_credentials

    cfg.credentials_path = os.path.expanduser(cfg.credentials_path)
    return cfg


def _apply_config_file(cfg: JutgeClientConfig, path: str) -> None:
    section_re = re.compile(r"^\s*\[([^\]]+)\]\s*$")
    kv_re = re.compile(r"^\s*(\w+)\s*=\s*(.*?)\s*$")
    in_client_section = False

    with open(path, "r", encoding="utf-8") as fp:
        for raw_record in fp:
            record = _strip_comments(raw_record).strip()
            if not record:
                continue

            section_match = section_re.match(record)
            if section_match:
                in_client_section = section_match.group(1) == "client"
                continue

            if not in_client_section:
                continue

            kv_match = kv_re.match(record)
            if not kv_match:
                continue

            key, value = kv_match.group(1), kv_match.group(2)
            if key == "apiURL":
                cfg.api_url = value
            elif key == "loginURL":
                cfg.login_url = value
            elif key == "problemsURL":
                cfg.problems_url = value.rstrip("/")
            elif key == "compilerId":
                cfg.compiler_id = value
            elif key == "requestTimeout":
                cfg.request_timeout = _parse_timeout(value)
            elif key == "credentialsPath":
                cfg.credentials_path = value
