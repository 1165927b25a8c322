import base64
import json
import logging
from typing import Dict, List, Any, Optional, Sequence

from .errors import MutationError
from .mutation import PodMutator, get_run_as_user

logger = logging.getLogger("webhook")


def process_admission_request(request: Dict[str, Any], mutators: Sequence[PodMutator]) -> Dict[str, Any]:
    """处理Kubernetes admission请求"""
    # 获取请求UID，用于响应
    uid = request["request"]["uid"]
    admission_request = request["request"]

    # 只处理Pod创建请求
    kind = admission_request["kind"]["kind"]
    if kind != "Pod":
        logger.info(f"Skipping non-Pod resource: {kind}")
        return create_admission_response(uid, allowed=True)

    operation = admission_request.get("operation", "CREATE")
    if operation != "CREATE":
        logger.info(f"Skipping {operation} operation on Pod")
        return create_admission_response(uid, allowed=True)

    pod = admission_request["object"]
    pod_name = pod.get("metadata", {}).get("name") or pod.get("metadata", {}).get("generateName", "unknown")

    # 依次应用所有变更规则，任何一个失败都拒绝请求
    mutated = pod
    for mutator in mutators:
        try:
            mutated = mutator.mutate(mutated, admission_request)
        except MutationError as e:
            logger.warning(f"Mutation {mutator.name()} failed for Pod {pod_name}: {e}")
            return create_admission_response(uid, allowed=False, error=e)

    patch = create_security_context_patch(pod, mutated)
    if not patch:
        logger.info(f"Skipping Pod {pod_name}: nothing to mutate")
        return create_admission_response(uid, allowed=True)

    # 编码补丁
    encoded_patch = base64.b64encode(json.dumps(patch).encode()).decode()

    logger.info(f"Setting runAsUser {get_run_as_user(mutated)} on Pod {pod_name}")

    return create_admission_response(uid, allowed=True, patch=encoded_patch)


def create_security_context_patch(pod: Dict[str, Any], mutated: Dict[str, Any]) -> List[Dict[str, Any]]:
    """比较原Pod和变更后的Pod，创建securityContext的JSON补丁"""
    if "spec" not in pod:
        if "spec" in mutated:
            return [{"op": "add", "path": "/spec", "value": mutated["spec"]}]
        return []

    spec = pod.get("spec") or {}
    mutated_spec = mutated.get("spec") or {}
    original = spec.get("securityContext")
    updated = mutated_spec.get("securityContext")
    if original == updated:
        return []

    if pod["spec"] is None:
        return [{"op": "replace", "path": "/spec", "value": mutated_spec}]

    # 原来没有securityContext字段时用add，否则用replace
    op = "replace" if "securityContext" in spec else "add"
    return [{
        "op": op,
        "path": "/spec/securityContext",
        "value": updated
    }]


def create_admission_response(uid: str, allowed: bool, patch: Optional[str] = None,
                              error: Optional[MutationError] = None) -> Dict[str, Any]:
    """创建admission响应"""
    response = {
        "apiVersion": "admission.k8s.io/v1",
        "kind": "AdmissionReview",
        "response": {
            "uid": uid,
            "allowed": allowed
        }
    }

    # 如果有补丁，添加到响应中
    if patch:
        response["response"]["patchType"] = "JSONPatch"
        response["response"]["patch"] = patch

    # 拒绝时说明哪一步失败
    if error is not None:
        response["response"]["status"] = {
            "code": 403 if error.benign else 500,
            "reason": error.kind.value if error.kind is not None else "MutationError",
            "message": f"Failed to set RunAsUser: {error}"
        }

    return response
