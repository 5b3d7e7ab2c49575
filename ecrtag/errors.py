class WebhookError(Exception):
    """Base class for every error that ends an admission request."""

    prefix = "webhook"
    default_message = "admission failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)

    def __str__(self):
        return f"{self.prefix}: {self.args[0]}"


class ProtocolError(WebhookError):
    """The request could not be decoded; answered with a bad-request envelope."""

    default_message = "bad request"

    def __init__(self, message: str = None, uid: str = None):
        super().__init__(message)
        # set once the admission request uid has been read
        self.uid = uid


class MissingContentType(ProtocolError):
    default_message = "missing Content-Type header"


class InvalidContentType(ProtocolError):
    default_message = "invalid content type; expected application/json"


class MalformedBody(ProtocolError):
    default_message = "request body is not a valid admission review"


class UnsupportedVersion(ProtocolError):
    default_message = "unsupported admission review version"


class InvalidAdmission(ProtocolError):
    default_message = "admission request was nil"


class ObjectNotFound(ProtocolError):
    default_message = "request did not include object"


class UnexpectedResource(ProtocolError):
    default_message = "unexpected resource kind"


class MalformedObject(ProtocolError):
    default_message = "request object could not be decoded"


class BadRequest(ProtocolError):
    default_message = "bad request"


class ExtractionError(WebhookError):
    default_message = "image extraction failed"


class ImagesNotFound(ExtractionError):
    default_message = "no ecr images found in pod specification"


class MultiImagesNotSupported(ExtractionError):
    default_message = "only one ecr image is supported"


class ComplianceError(WebhookError):
    default_message = "repository fails ecr criteria"


class InvalidRepositoryName(ComplianceError):
    default_message = "repository name must not be empty"


class RepositoryNotFound(ComplianceError):
    pass


class RegistryError(ComplianceError):
    """The registry description service failed; its message is kept verbatim."""

    def __str__(self):
        return self.args[0]


class ResolutionError(WebhookError):
    default_message = "image tag could not be resolved"


class MalformedRepositoryName(ResolutionError):
    pass


class ParameterNotFound(ResolutionError):
    pass


class ParameterStoreError(ResolutionError):
    """The parameter store failed; its message is kept verbatim."""

    def __str__(self):
        return self.args[0]


class Cancelled(WebhookError):
    default_message = "operation cancelled"


class DeadlineExceeded(Cancelled):
    default_message = "request deadline exceeded"
