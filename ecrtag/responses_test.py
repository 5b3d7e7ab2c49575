import base64
import json

from ecrtag import responses
from ecrtag.errors import ImagesNotFound, MissingContentType
from ecrtag.models import SchemaVersion

UID = "0df28fbd-5f5f-11e8-bc74-36e6bb280816"
IMAGE = "123456789012.dkr.ecr.us-east-1.amazonaws.com/test2-frontend:bec0e8f"


def get_patch(patch: str):
    decoded = base64.b64decode(patch).decode()
    return json.loads(decoded)


def test_image_patch():
    patch = responses.image_patch("/spec/template/spec/containers/0/image", IMAGE)
    assert json.loads(patch) == [
        {"op": "replace", "path": "/spec/template/spec/containers/0/image", "value": IMAGE},
    ]


def test_allowed_with_patch():
    patch = responses.image_patch("/spec/containers/0/image", IMAGE)
    review = responses.review(responses.allowed(UID, patch=patch))
    assert review["apiVersion"] == "admission.k8s.io/v1"
    assert review["kind"] == "AdmissionReview"
    response = review["response"]
    assert response["uid"] == UID
    assert response["allowed"] is True
    assert response["patchType"] == "JSONPatch"
    assert get_patch(response["patch"])[0]["value"] == IMAGE
    assert response["status"] == {
        "status": "Success",
        "message": responses.MESSAGE_COMPLIANT,
        "code": 200,
    }


def test_allowed_without_patch():
    response = responses.review(responses.allowed(UID, "skipped"))["response"]
    assert response["allowed"] is True
    assert "patch" not in response
    assert "patchType" not in response
    assert response["status"]["message"] == "skipped"


def test_denied_keeps_uid():
    verdict = responses.denied(UID, responses.CODE_NOT_ACCEPTABLE, ImagesNotFound())
    response = responses.review(verdict, SchemaVersion.V1BETA1)["response"]
    assert response["uid"] == UID
    assert response["allowed"] is False
    assert "patch" not in response
    assert response["status"] == {
        "status": "Failure",
        "message": "webhook: no ecr images found in pod specification",
        "reason": "NotAcceptable",
        "code": 406,
    }


def test_review_echoes_version():
    review = responses.review(responses.allowed(UID), SchemaVersion.V1BETA1)
    assert review["apiVersion"] == "admission.k8s.io/v1beta1"


def test_bad_request_without_uid():
    review = responses.review(responses.bad_request(MissingContentType()))
    response = review["response"]
    assert "uid" not in response
    assert response["allowed"] is False
    assert response["status"]["status"] == "Failure"
    assert response["status"]["reason"] == "BadRequest"
    assert response["status"]["code"] == 400
    assert "patch" not in response
