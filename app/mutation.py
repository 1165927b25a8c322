import copy
import logging
from abc import ABC, abstractmethod
from typing import Dict, Any

from .serviceaccount import extract_service_account
from .uid_mapping import UidResolver

logger = logging.getLogger("webhook")


class PodMutator(ABC):
    """Pod变更规则的接口"""

    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def mutate(self, pod: Dict[str, Any], request: Dict[str, Any]) -> Dict[str, Any]:
        """返回变更后的Pod副本，失败时抛出MutationError"""
        ...


def get_run_as_user(pod: Dict[str, Any]):
    """读取Pod级别securityContext中的runAsUser"""
    security_context = (pod.get("spec") or {}).get("securityContext") or {}
    return security_context.get("runAsUser")


class DefaultRunAsUser(PodMutator):
    """Pod未声明runAsUser时，按ServiceAccount注入默认UID"""

    def __init__(self, resolver: UidResolver):
        self.resolver = resolver

    def name(self) -> str:
        return "default_run_as_user"

    def mutate(self, pod: Dict[str, Any], request: Dict[str, Any]) -> Dict[str, Any]:
        # 已显式设置runAsUser的Pod保持不变
        if get_run_as_user(pod) is not None:
            return copy.deepcopy(pod)

        service_account = extract_service_account(request)
        if service_account is None:
            return copy.deepcopy(pod)

        logger.info(f"[{self.name()}] No runAsUser rule found, applying default "
                    f"for current ServiceAccount {service_account}")
        return self.resolver.apply(pod, service_account)
