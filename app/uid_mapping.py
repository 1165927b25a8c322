import copy
import logging
import re
from typing import Dict, Any, Callable

from kubernetes import client, config
from kubernetes.client import ApiException

from .errors import (
    ClientInitError,
    MalformedMappingValueError,
    MappingFetchError,
    UnmappedPrincipalError,
)
from .utils import UidMappingConfig

logger = logging.getLogger("webhook")

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
_INT64_PATTERN = re.compile(r"[+-]?[0-9]+")


def new_core_v1_api(mapping_config: UidMappingConfig) -> client.CoreV1Api:
    """使用Pod内的ServiceAccount凭据创建CoreV1Api客户端"""
    configuration = client.Configuration()
    config.load_incluster_config(client_configuration=configuration)
    return client.CoreV1Api(client.ApiClient(configuration))


def parse_uid(service_account: str, value: str) -> int:
    """按十进制int64解析UID"""
    if not _INT64_PATTERN.fullmatch(value):
        raise MalformedMappingValueError(service_account, value)
    uid = int(value, 10)
    if uid < INT64_MIN or uid > INT64_MAX:
        raise MalformedMappingValueError(service_account, value)
    return uid


class UidResolver:
    """根据ServiceAccount名称从ConfigMap查找UID并写入Pod的securityContext

    每次调用都重新创建客户端并读取ConfigMap，不缓存，不重试。
    """

    def __init__(self, mapping_config: UidMappingConfig,
                 client_factory: Callable[[UidMappingConfig], Any] = new_core_v1_api):
        self.config = mapping_config
        self.client_factory = client_factory

    def _client(self):
        try:
            return self.client_factory(self.config)
        except Exception as e:
            raise ClientInitError(cause=e) from e

    def _fetch_mapping(self, api, service_account: str) -> Dict[str, str]:
        kwargs = {}
        if self.config.request_timeout is not None:
            kwargs["_request_timeout"] = self.config.request_timeout
        try:
            configmap = api.read_namespaced_config_map(
                name=self.config.configmap_name,
                namespace=self.config.namespace,
                **kwargs,
            )
        except ApiException as e:
            raise MappingFetchError(self.config.namespace, self.config.configmap_name,
                                    service_account=service_account, cause=e,
                                    status=e.status) from e
        except Exception as e:
            raise MappingFetchError(self.config.namespace, self.config.configmap_name,
                                    service_account=service_account, cause=e) from e
        return configmap.data or {}

    def resolve(self, service_account: str) -> int:
        """返回ServiceAccount对应的UID"""
        api = self._client()
        try:
            data = self._fetch_mapping(api, service_account)
        finally:
            # 释放urllib3连接池
            api.api_client.close()

        uid = data.get(service_account)
        if not uid:
            raise UnmappedPrincipalError(service_account, self.config.configmap_name)

        logger.info(f"ServiceAccount {service_account} has UID {uid} associated with it")
        return parse_uid(service_account, uid)

    def apply(self, pod: Dict[str, Any], service_account: str) -> Dict[str, Any]:
        """返回设置了runAsUser的Pod副本，原Pod不变"""
        uid = self.resolve(service_account)

        mpod = copy.deepcopy(pod)
        if mpod.get("spec") is None:
            mpod["spec"] = {}
        spec = mpod["spec"]
        if spec.get("securityContext") is None:
            spec["securityContext"] = {}
        spec["securityContext"]["runAsUser"] = uid
        return mpod
