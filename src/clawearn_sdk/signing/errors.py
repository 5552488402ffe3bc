"""Errors raised while building, signing and submitting L1 actions.

Everything up to and including ``SignatureValidationError`` is raised locally,
before any request reaches the venue.
"""


class ClawearnError(Exception):
    """Base class for all SDK errors."""


class InvalidActionError(ClawearnError, ValueError):
    """The action is missing, empty or has an invalid field."""


class InvalidNonceError(ClawearnError, ValueError):
    """The nonce is not a positive integer."""


class EncodingError(ClawearnError):
    """The action could not be serialized into its canonical form."""


class SigningError(ClawearnError):
    """Key material is missing or unusable.

    The message never includes the key itself.
    """


class MissingSigningKeyError(SigningError):
    """No signing key is available."""


class SchemaError(ClawearnError):
    """The EIP-712 domain or Agent schema is malformed (programming error)."""


class SignatureValidationError(ClawearnError, ValueError):
    """A signature failed its well-formedness checks."""


class NetworkFailureError(ClawearnError):
    """The venue could not be reached.

    Retrying is only safe with a fresh nonce.
    """


class VenueRejection(ClawearnError):
    """The venue rejected the action.

    ``reason`` carries the venue's message verbatim.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class MetadataUnavailableError(ClawearnError):
    """Venue metadata needed to build an action could not be resolved."""
