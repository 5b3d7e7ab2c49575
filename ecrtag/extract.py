import logging

from ecrtag.errors import ImagesNotFound, MultiImagesNotSupported
from ecrtag.reference import is_ecr_image, split_registry
from ecrtag.types import ExtractionResult, Workload

logger = logging.getLogger(__name__)


def extract_images(workload: Workload) -> ExtractionResult:
    """
    Return the registry and the unique ECR images of the workload.

    Containers are walked before init containers. The registry is the first
    one observed; images are kept in first-seen order without duplicates.
    """
    registry = ""
    images = []
    for image in workload.images:
        if not is_ecr_image(image):
            continue
        parsed = split_registry(image)
        if parsed is None:
            logger.debug("dropping unparseable image %s", image)
            continue
        image_registry, remainder = parsed
        if not registry:
            registry = image_registry
        if remainder not in images:
            images.append(remainder)
    return ExtractionResult(registry=registry, images=images)


class ImageExtractor:

    def __init__(self, max_images: int = 1):
        self._max_images = max_images

    def extract(self, workload: Workload) -> ExtractionResult:
        result = extract_images(workload)
        if not result.images:
            raise ImagesNotFound()
        if len(result.images) > self._max_images:
            raise MultiImagesNotSupported(
                f"only {self._max_images} ecr image is supported, found {len(result.images)}"
            )
        return result
