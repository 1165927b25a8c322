import logging
from typing import Dict, Any, Optional

logger = logging.getLogger("webhook")

SERVICE_ACCOUNT_PREFIX = "system:serviceaccount:"


def extract_service_account(request: Dict[str, Any]) -> Optional[str]:
    """从admission请求的userInfo中解析ServiceAccount名称

    用户名格式为 system:serviceaccount:<namespace>:<name>，
    不是ServiceAccount发起的请求（或格式不对）返回None。
    """
    username = (request.get("userInfo") or {}).get("username") or ""
    if not username.startswith(SERVICE_ACCOUNT_PREFIX):
        return None

    parts = username.split(":")
    if len(parts) != 4 or not parts[3]:
        return None

    namespace, name = parts[2], parts[3]
    logger.info(f"Request made by ServiceAccount: {name} in namespace: {namespace}")
    return name
