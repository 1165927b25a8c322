from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from app.utils import UidMappingConfig


def make_pod(security_context=None, name="build-pod"):
    pod = {"metadata": {"name": name}, "spec": {"containers": [{"name": "main", "image": "busybox"}]}}
    if security_context is not None:
        pod["spec"]["securityContext"] = security_context
    return pod


def make_request(username="system:serviceaccount:ci:build-bot"):
    return {"userInfo": {"username": username, "groups": []}}


def make_review(pod, username="system:serviceaccount:ci:build-bot", kind="Pod", operation="CREATE"):
    return {
        "apiVersion": "admission.k8s.io/v1",
        "kind": "AdmissionReview",
        "request": {
            "uid": "705ab4f5-6393-11e8-b7cc-42010a800002",
            "kind": {"group": "", "version": "v1", "kind": kind},
            "namespace": "ci",
            "operation": operation,
            "userInfo": {"username": username},
            "object": pod,
        },
    }


@pytest.fixture
def mapping_config():
    return UidMappingConfig(configmap_name="uid-mapping", namespace="platform")


@pytest.fixture
def core_api():
    """CoreV1Api的替身，默认返回包含build-bot映射的ConfigMap"""
    api = Mock()
    api.read_namespaced_config_map.return_value = SimpleNamespace(data={"build-bot": "1001"})
    return api


@pytest.fixture
def client_factory(core_api):
    return Mock(return_value=core_api)
