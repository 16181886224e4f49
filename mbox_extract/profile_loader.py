"""
身份档案加载模块 (Identity Profile Loader Module)
==============================================

从 YAML 档案文件加载 IdentityConfig（忽略的发件人、本人地址、本人姓名），
并与环境变量中的附加片段合并。
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from mbox_extract.config import Settings, split_fragments
from mbox_extract.ir import IdentityConfig
from mbox_extract.logger import get_logger

logger = get_logger(__name__)

# mbox_extract/profile_loader.py → parents[1] 是仓库根目录
REPO_ROOT = Path(__file__).resolve().parents[1]


def _ensure_dict(value: Any) -> Dict[str, Any]:
    """确保返回字典类型，非字典则返回空字典。"""
    if isinstance(value, dict):
        return value
    return {}


def _ensure_str_list(value: Any) -> List[str]:
    """确保返回字符串列表，过滤空白项与非字符串项；单个字符串视为单元素列表。"""
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    out: List[str] = []
    for item in value:
        if isinstance(item, str) and item.strip():
            out.append(item.strip())
    return out


def resolve_profile_path(profile_path: str) -> Path:
    """相对路径按仓库根目录解析。"""
    path = Path(profile_path).expanduser()
    if not path.is_absolute():
        path = (REPO_ROOT / path).resolve()
    return path


def load_identity(profile_path: Optional[str]) -> IdentityConfig:
    """
    从 YAML 文件加载身份配置。

    档案格式::

        ignored_senders: ["Mail Delivery Subsystem", ...]
        my_addresses: ["me@example.com", ...]
        my_names: ["Jane Doe", ...]

    参数:
        profile_path: 档案文件路径；为空时返回空配置

    抛出:
        FileNotFoundError: 档案文件不存在时
    """
    if not profile_path:
        return IdentityConfig()

    path = resolve_profile_path(profile_path)
    if not path.exists():
        raise FileNotFoundError(f"identity profile not found: {path}")

    data = _ensure_dict(yaml.safe_load(path.read_text(encoding="utf-8")))
    identity = IdentityConfig(
        ignored_senders=_ensure_str_list(data.get("ignored_senders")),
        my_addresses=_ensure_str_list(data.get("my_addresses")),
        my_names=_ensure_str_list(data.get("my_names")),
    )
    logger.info(
        "Identity profile loaded: %s (ignored=%d addresses=%d names=%d)",
        path,
        len(identity.ignored_senders),
        len(identity.my_addresses),
        len(identity.my_names),
    )
    return identity


def identity_from_settings(settings: Settings) -> IdentityConfig:
    """档案中的片段在前，环境变量 MBOX_IGNORED_SENDERS 等追加在后。"""
    from_profile = load_identity(settings.IDENTITY_PROFILE)
    from_env = IdentityConfig(
        ignored_senders=split_fragments(settings.IGNORED_SENDERS),
        my_addresses=split_fragments(settings.MY_ADDRESSES),
        my_names=split_fragments(settings.MY_NAMES),
    )
    return from_profile.merged(from_env)
