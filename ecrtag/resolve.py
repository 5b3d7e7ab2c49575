import logging
import typing

from ecrtag.batch import CancelScope, fan_out
from ecrtag.clients import ParameterStore
from ecrtag.errors import MalformedRepositoryName, ParameterNotFound
from ecrtag.reference import ImageReference
from ecrtag.types import ResolvedImage

logger = logging.getLogger(__name__)

SEPARATOR = "-"
DEFAULT_PARAMETER_PATH = "/{project}/{component}/ecr_tag"


def parameter_name(repository: str, template: str = DEFAULT_PARAMETER_PATH) -> str:
    """
    Repositories are named "project-component", e.g. "shop-frontend", and
    their sanctioned tag lives at "/shop/frontend/ecr_tag".
    """
    project, sep, component = repository.partition(SEPARATOR)
    if not sep or not project or not component:
        raise MalformedRepositoryName(
            f"repository '{repository}' does not follow the project{SEPARATOR}component naming convention"
        )
    return template.format(project=project, component=component)


def check_template(template: str) -> str:
    """Reject parameter path templates that name anything but project and component."""
    try:
        template.format(project="project", component="component")
    except (KeyError, IndexError, ValueError) as err:
        raise ValueError(
            f"invalid parameter path {template!r}: only {{project}} and {{component}} may be used"
        ) from err
    return template


class TagResolver:

    def __init__(self, store: ParameterStore, template: str = DEFAULT_PARAMETER_PATH):
        self._store = store
        self._template = check_template(template)

    def resolve(self, image: str, registry: str = "") -> ResolvedImage:
        reference = ImageReference.parse(image)
        name = parameter_name(reference.repository, self._template)
        tag = self._store.get_parameter(name)
        if not tag:
            raise ParameterNotFound(f"parameter '{name}' not found for repository '{reference.repository}'")

        full_reference = f"{reference.repository}:{tag}"
        if registry:
            full_reference = f"{registry}/{full_reference}"
        logger.debug("resolved %s to %s via %s", image, full_reference, name)
        return ResolvedImage(
            original_repository=reference.repository,
            resolved_tag=tag,
            full_reference=full_reference,
        )


class BatchTagResolver:

    def __init__(self, resolver: TagResolver):
        self._resolver = resolver

    def resolve(
        self, registry: str, images: typing.Sequence[str], scope: CancelScope = None
    ) -> typing.List[ResolvedImage]:
        return fan_out(lambda image: self._resolver.resolve(image, registry), images, scope)
