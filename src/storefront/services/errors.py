"""
Domain exceptions raised by the service layer.

Routes translate them to HTTP responses; a plain ``ValueError`` from a
service means the request failed validation.
"""


class StorefrontError(Exception):
    """Base class for storefront errors"""


class NotFoundError(StorefrontError):
    """The addressed row does not exist"""


class ConflictError(StorefrontError):
    """A uniqueness or foreign-key constraint blocked the write"""


class UpstreamServiceError(StorefrontError):
    """An external collaborator failed or answered unexpectedly"""


class PaymentVerificationError(UpstreamServiceError):
    """The payment provider could not confirm a transaction"""


class ImageHostError(UpstreamServiceError):
    """The image host rejected or failed an upload"""


class MailDeliveryError(UpstreamServiceError):
    """Outbound email could not be sent"""
