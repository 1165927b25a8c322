import os
import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional

logger = logging.getLogger("webhook")

DEFAULT_CONFIGMAP_NAME = "uid-mapping"
DEFAULT_NAMESPACE = "default"


@dataclass(frozen=True)
class UidMappingConfig:
    """UID映射ConfigMap的位置，启动后不可变"""
    configmap_name: str = DEFAULT_CONFIGMAP_NAME
    namespace: str = DEFAULT_NAMESPACE
    # 单次API调用超时（秒），None表示不设置
    request_timeout: Optional[float] = None


def get_env_or_default(key: str, default: str) -> str:
    """从环境变量获取值，如果不存在则使用默认值"""
    return os.environ.get(key, default)


def load_uid_mapping_config() -> UidMappingConfig:
    """从环境变量构建UidMappingConfig"""
    timeout = get_env_or_default("UID_MAPPING_TIMEOUT", "")
    return UidMappingConfig(
        configmap_name=get_env_or_default("UID_MAPPING_CONFIGMAP", DEFAULT_CONFIGMAP_NAME),
        namespace=get_env_or_default("UID_MAPPING_NAMESPACE", DEFAULT_NAMESPACE),
        request_timeout=float(timeout) if timeout else None,
    )


def get_log_level(default: str = "INFO") -> str:
    """从LOG_LEVEL读取日志级别，无法识别时使用默认值"""
    level = get_env_or_default("LOG_LEVEL", default).upper()
    if not isinstance(logging.getLevelName(level), int):
        return default
    return level


def log_admission_request(request: Dict[str, Any]) -> None:
    """记录admission请求的详细信息"""
    # DELETE请求的object为null
    admission_request = request.get("request") or {}
    kind = (admission_request.get("kind") or {}).get("kind", "unknown")
    namespace = admission_request.get("namespace", "unknown")
    metadata = (admission_request.get("object") or {}).get("metadata") or {}
    name = metadata.get("name") or metadata.get("generateName", "unknown")
    operation = admission_request.get("operation", "unknown")
    username = (admission_request.get("userInfo") or {}).get("username", "unknown")

    logger.info(f"Processing {operation} request for {kind}/{name} in namespace {namespace} by {username}")
