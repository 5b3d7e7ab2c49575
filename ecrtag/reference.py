"""
Container image references that point at Amazon ECR.

Registries are recognised in commercial regions, regions in China, GovCloud
and FIPS endpoints::

    <account>.dkr.ecr.<region>.amazonaws.com/<repository>:<tag>
    <account>.dkr.ecr-fips.<region>.amazonaws.com/<repository>@sha256:<hash>
    <account>.dkr.ecr.<region>.amazonaws.com.cn/<repository>:<tag>
"""
import re
import typing

from pydantic import BaseModel, model_validator

ECR_IMAGE_PATTERN = re.compile(
    r"^([a-zA-Z0-9][a-zA-Z0-9-_]*)\.dkr\.(ecr|ecr-fips)\.([a-z][a-z0-9-_]*)\.amazonaws\.com(\.cn)?.*"
)

DIGEST_MARKER = "@"
TAG_MARKER = ":"
DEFAULT_TAG = "latest"


def is_ecr_image(image: str) -> bool:
    return bool(image) and ECR_IMAGE_PATTERN.match(image) is not None


def split_registry(image: str) -> typing.Optional[typing.Tuple[str, str]]:
    """
    From registry/repository:tag to (registry, repository:tag).

    :return: None when the image has no registry component.
    """
    if "/" not in image:
        return None
    registry, remainder = image.split("/", 1)
    return registry, remainder


def split_reference(reference: str) -> typing.Tuple[str, str]:
    """
    From repository:tag to (repository, tag), or from repository@sha256:hash
    to (repository, @sha256:hash).
    """
    if DIGEST_MARKER in reference:
        repository, digest = reference.split(DIGEST_MARKER, 1)
        return repository, DIGEST_MARKER + digest
    if TAG_MARKER not in reference:
        return reference, DEFAULT_TAG
    repository, tag = reference.split(TAG_MARKER, 1)
    return repository, tag


class ImageReference(BaseModel):
    raw: str
    registry: str = ""
    repository: str
    tag: typing.Optional[str] = None
    digest: typing.Optional[str] = None

    @model_validator(mode="after")
    def _one_of_tag_or_digest(self):
        if (self.tag is None) == (self.digest is None):
            raise ValueError("exactly one of tag or digest must be set")
        return self

    @classmethod
    def parse(cls, image: str) -> "ImageReference":
        """Parse either a full image or a registry-less repository reference."""
        registry, remainder = "", image
        if is_ecr_image(image):
            registry, remainder = split_registry(image) or ("", image)
        repository, tag_or_digest = split_reference(remainder)
        if tag_or_digest.startswith(DIGEST_MARKER):
            return cls(raw=image, registry=registry, repository=repository, digest=tag_or_digest[1:])
        return cls(raw=image, registry=registry, repository=repository, tag=tag_or_digest)

    @property
    def is_digest(self) -> bool:
        return self.digest is not None

    @property
    def tag_or_digest(self) -> str:
        if self.is_digest:
            return DIGEST_MARKER + self.digest
        return self.tag

    @property
    def name(self) -> str:
        """Repository plus tag or digest, without the registry."""
        if self.is_digest:
            return f"{self.repository}{DIGEST_MARKER}{self.digest}"
        return f"{self.repository}{TAG_MARKER}{self.tag}"

    def with_tag(self, tag: str) -> "ImageReference":
        image = f"{self.repository}{TAG_MARKER}{tag}"
        if self.registry:
            image = f"{self.registry}/{image}"
        return ImageReference(raw=image, registry=self.registry, repository=self.repository, tag=tag)

    def __str__(self):
        if self.registry:
            return f"{self.registry}/{self.name}"
        return self.name
