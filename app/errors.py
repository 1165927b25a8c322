from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """变更失败的类别"""
    CLIENT_INIT = "ClientInitError"
    MAPPING_FETCH = "MappingFetchError"
    UNMAPPED_PRINCIPAL = "UnmappedPrincipalError"
    MALFORMED_MAPPING_VALUE = "MalformedMappingValueError"


class MutationError(Exception):
    """Pod变更失败的基类，调用方据此拒绝admission请求"""
    kind: Optional[ErrorKind] = None
    # 预期内的失败（例如ServiceAccount未配置UID），与基础设施故障区分
    benign = False

    def __init__(self, service_account: Optional[str] = None, cause: Optional[BaseException] = None):
        self.service_account = service_account
        self.cause = cause
        super().__init__(self.message())

    def message(self) -> str:
        return f"failed to mutate Pod for ServiceAccount {self.service_account}: {self.cause}"

    def __str__(self) -> str:
        return self.message()


class ClientInitError(MutationError):
    kind = ErrorKind.CLIENT_INIT

    def message(self) -> str:
        return f"failed initializing Kubernetes client: {self.cause}"


class MappingFetchError(MutationError):
    kind = ErrorKind.MAPPING_FETCH

    def __init__(self, namespace: str, resource_name: str,
                 service_account: Optional[str] = None,
                 cause: Optional[BaseException] = None,
                 status: Optional[int] = None):
        self.namespace = namespace
        self.resource_name = resource_name
        self.status = status
        super().__init__(service_account, cause)

    def message(self) -> str:
        detail = f" (status {self.status})" if self.status else ""
        return (f"failed getting ConfigMap {self.namespace}/{self.resource_name}"
                f"{detail}: {self.cause}")


class UnmappedPrincipalError(MutationError):
    kind = ErrorKind.UNMAPPED_PRINCIPAL
    benign = True

    def __init__(self, service_account: str, resource_name: str):
        self.resource_name = resource_name
        super().__init__(service_account)

    def message(self) -> str:
        return (f"ServiceAccount {self.service_account} has no UID associated with it "
                f"in ConfigMap {self.resource_name}")


class MalformedMappingValueError(MutationError):
    kind = ErrorKind.MALFORMED_MAPPING_VALUE

    def __init__(self, service_account: str, value: str):
        self.value = value
        super().__init__(service_account)

    def message(self) -> str:
        return (f"failed to convert UID {self.value!r} of ServiceAccount "
                f"{self.service_account} to int64")
