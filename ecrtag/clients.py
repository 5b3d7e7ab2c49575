import logging
import typing

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ecrtag.errors import ParameterStoreError, RegistryError

logger = logging.getLogger(__name__)

REPOSITORY_NOT_FOUND = "RepositoryNotFoundException"
PARAMETER_NOT_FOUND = "ParameterNotFound"


class RepositoryRegistry(typing.Protocol):
    def describe_repository(self, name: str) -> typing.Optional[dict]:
        ...

    def scan_findings(self, repository: str, tag_or_digest: str) -> typing.Iterator[dict]:
        ...


class ParameterStore(typing.Protocol):
    def get_parameter(self, name: str) -> typing.Optional[str]:
        ...


def _error_code(err: ClientError) -> str:
    return err.response.get("Error", {}).get("Code", "")


def _image_id(tag_or_digest: str) -> dict:
    if tag_or_digest.startswith("@"):
        return {"imageDigest": tag_or_digest[1:]}
    return {"imageTag": tag_or_digest}


class EcrRegistry:
    """Registry description backed by the ECR API."""

    def __init__(self, client):
        self._client = client

    def describe_repository(self, name: str) -> typing.Optional[dict]:
        try:
            output = self._client.describe_repositories(repositoryNames=[name])
        except ClientError as err:
            if _error_code(err) == REPOSITORY_NOT_FOUND:
                return None
            raise RegistryError(str(err)) from err
        except BotoCoreError as err:
            raise RegistryError(str(err)) from err
        repositories = output.get("repositories") or []
        if not repositories:
            return None
        return repositories[0]

    def scan_findings(self, repository: str, tag_or_digest: str) -> typing.Iterator[dict]:
        paginator = self._client.get_paginator("describe_image_scan_findings")
        pages = paginator.paginate(repositoryName=repository, imageId=_image_id(tag_or_digest))
        try:
            for page in pages:
                yield from page.get("imageScanFindings", {}).get("findings", [])
        except (BotoCoreError, ClientError) as err:
            raise RegistryError(str(err)) from err


class SsmParameterStore:
    """Parameter store backed by AWS Systems Manager."""

    def __init__(self, client):
        self._client = client

    def get_parameter(self, name: str) -> typing.Optional[str]:
        try:
            output = self._client.get_parameter(Name=name)
        except ClientError as err:
            if _error_code(err) == PARAMETER_NOT_FOUND:
                return None
            raise ParameterStoreError(str(err)) from err
        except BotoCoreError as err:
            raise ParameterStoreError(str(err)) from err
        return output.get("Parameter", {}).get("Value")


def build_clients(region: typing.Optional[str] = None) -> typing.Tuple[EcrRegistry, SsmParameterStore]:
    """Create the collaborators once, at process start."""
    session = boto3.Session(region_name=region)
    logger.info("using aws region %s", session.region_name)
    return EcrRegistry(session.client("ecr")), SsmParameterStore(session.client("ssm"))
