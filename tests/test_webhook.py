import base64
import json
from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from app.errors import MutationError
from app.mutation import DefaultRunAsUser
from app.uid_mapping import UidResolver
from app.webhook import create_security_context_patch, process_admission_request
from conftest import make_pod, make_review


def decode_patch(response):
    return json.loads(base64.b64decode(response["response"]["patch"]))


@pytest.fixture
def mutators(mapping_config, client_factory):
    return [DefaultRunAsUser(UidResolver(mapping_config, client_factory=client_factory))]


def test_patch_adds_security_context(mutators):
    response = process_admission_request(make_review(make_pod()), mutators)

    assert response["kind"] == "AdmissionReview"
    assert response["response"]["uid"] == "705ab4f5-6393-11e8-b7cc-42010a800002"
    assert response["response"]["allowed"] is True
    assert response["response"]["patchType"] == "JSONPatch"
    assert decode_patch(response) == [
        {"op": "add", "path": "/spec/securityContext", "value": {"runAsUser": 1001}}
    ]


def test_patch_replaces_existing_security_context(mutators):
    pod = make_pod(security_context={"fsGroup": 2000})

    response = process_admission_request(make_review(pod), mutators)

    assert decode_patch(response) == [
        {"op": "replace", "path": "/spec/securityContext", "value": {"fsGroup": 2000, "runAsUser": 1001}}
    ]


def test_pod_with_run_as_user_is_admitted_without_patch(mutators, client_factory):
    response = process_admission_request(make_review(make_pod(security_context={"runAsUser": 7})), mutators)

    assert response["response"] == {"uid": "705ab4f5-6393-11e8-b7cc-42010a800002", "allowed": True}
    client_factory.assert_not_called()


def test_human_user_is_admitted_without_patch(mutators):
    response = process_admission_request(make_review(make_pod(), username="jane@example.com"), mutators)

    assert response["response"]["allowed"] is True
    assert "patch" not in response["response"]


def test_non_pod_resources_are_skipped(mutators, client_factory):
    response = process_admission_request(make_review({"metadata": {}}, kind="Deployment"), mutators)

    assert response["response"]["allowed"] is True
    client_factory.assert_not_called()


def test_update_operations_are_skipped(mutators, client_factory):
    response = process_admission_request(make_review(make_pod(), operation="UPDATE"), mutators)

    assert response["response"]["allowed"] is True
    client_factory.assert_not_called()


def test_unmapped_service_account_is_denied(mutators):
    response = process_admission_request(
        make_review(make_pod(), username="system:serviceaccount:ci:ghost"), mutators)

    status = response["response"]["status"]
    assert response["response"]["allowed"] is False
    assert "patch" not in response["response"]
    assert status["code"] == 403
    assert status["reason"] == "UnmappedPrincipalError"
    assert "ghost" in status["message"]


def test_malformed_value_is_denied(mutators, core_api):
    core_api.read_namespaced_config_map.return_value = SimpleNamespace(data={"build-bot": "not-a-number"})

    response = process_admission_request(make_review(make_pod()), mutators)

    assert response["response"]["allowed"] is False
    assert response["response"]["status"]["code"] == 500
    assert response["response"]["status"]["reason"] == "MalformedMappingValueError"


def test_unexpected_errors_propagate():
    mutator = Mock()
    mutator.mutate.side_effect = KeyError("spec")

    with pytest.raises(KeyError):
        process_admission_request(make_review(make_pod()), [mutator])


def test_no_patch_when_unchanged():
    pod = make_pod(security_context={"runAsUser": 1})
    assert create_security_context_patch(pod, pod) == []


def test_patch_for_pod_without_spec():
    mutated = {"spec": {"securityContext": {"runAsUser": 1001}}}
    assert create_security_context_patch({"metadata": {}}, mutated) == [
        {"op": "add", "path": "/spec", "value": {"securityContext": {"runAsUser": 1001}}}
    ]


def test_generic_mutation_error_is_denied():
    mutator = Mock()
    mutator.mutate.side_effect = MutationError("build-bot")

    response = process_admission_request(make_review(make_pod()), [mutator])

    assert response["response"]["allowed"] is False
    assert response["response"]["status"]["code"] == 500
    assert response["response"]["status"]["reason"] == "MutationError"
