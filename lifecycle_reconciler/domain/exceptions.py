"""Domain-specific exceptions"""


class ReconcilerError(Exception):
    """Base exception for the reconciler"""

    pass


class InvalidPolicyError(ReconcilerError):
    """Threshold configuration is contradictory; nothing can be classified"""

    pass


class PreconditionMissingError(ReconcilerError):
    """Directory, template or required configuration unavailable at run start"""

    pass


class DirectoryError(ReconcilerError):
    """Directory service returned an error or is unavailable"""

    pass


class DirectoryQueryError(DirectoryError):
    """Reading account records from the directory failed"""

    pass


class DirectoryMutationError(DirectoryError):
    """Writing enabled/description back to the directory failed"""

    pass


class MailSendError(ReconcilerError):
    """Mail transport rejected or failed to deliver a message"""

    pass


class TemplateRenderError(ReconcilerError):
    """A template could not be rendered"""

    pass


class TemplateNotFoundError(TemplateRenderError):
    """Template identifier does not resolve to a template"""

    pass
