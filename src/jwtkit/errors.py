"""JWT errors."""
from typing import Any


class Error(Exception):
    """Generic jwtkit error."""


class RegistrationError(Error):
    """Algorithm or key type registration contract violated."""


class MalformedTokenError(Error):
    """Token is not made of exactly three dot-separated segments."""


class MalformedHeaderError(Error):
    """Token header could not be decoded or is not a JWT header."""


class MalformedPayloadError(Error):
    """Verified token payload could not be decoded."""


class UnknownAlgorithmError(Error):
    """Algorithm name is not a known JWS algorithm.

    :ivar alg: The offending algorithm name or identifier.

    """
    def __init__(self, alg: Any, *args: Any) -> None:
        super().__init__(*args)
        self.alg = alg

    def __str__(self) -> str:
        return 'Unknown algorithm: {0!r}'.format(self.alg)


class UnavailableAlgorithmError(UnknownAlgorithmError):
    """No available implementation is registered for the algorithm."""

    def __str__(self) -> str:
        return 'Requested algorithm {0} is unavailable'.format(self.alg)


class UnknownKeyTypeError(Error):
    """JWK ``kty`` is not a known key type.

    :ivar kty: The offending key type.

    """
    def __init__(self, kty: Any, *args: Any) -> None:
        super().__init__(*args)
        self.kty = kty

    def __str__(self) -> str:
        return 'Unknown key type: {0!r}'.format(self.kty)


class UnavailableKeyTypeError(UnknownKeyTypeError):
    """No key parser is registered for the key type."""

    def __str__(self) -> str:
        return 'Requested key type {0} is unavailable'.format(self.kty)


class MalformedKeyError(Error):
    """JWK document is not a JSON object."""


class InvalidKeyFieldError(Error):
    """Required JWK field is missing or could not be decoded.

    :ivar str field: JSON name of the field.

    """
    def __init__(self, field: str, *args: Any) -> None:
        super().__init__(*args)
        self.field = field

    def __str__(self) -> str:
        if self.args:
            return 'Invalid key field {0!r}: {1}'.format(self.field, self.args[0])
        return 'Invalid key field {0!r}'.format(self.field)


class CapabilityMismatchError(Error):
    """JWK ``key_ops`` does not allow the requested operation.

    :ivar str operation: ``"sign"`` or ``"verify"``.

    """
    def __init__(self, operation: str, *args: Any) -> None:
        super().__init__(*args)
        self.operation = operation

    def __str__(self) -> str:
        return 'JWK key_ops does not include {0!r}'.format(self.operation)


class InvalidKeyError(Error):
    """Key material is inconsistent or does not fit the algorithm."""


class VerificationError(Error):
    """Token could not be verified.

    Catch this class when the reason for rejecting a token must not be
    revealed to the token's sender.

    """


class MalformedSignatureError(VerificationError):
    """Signature length does not match the algorithm."""


class SignatureInvalidError(VerificationError):
    """Signature does not verify, or no candidate verifier accepted it."""


class NoVerifierForKeyIDError(VerificationError):
    """No verifier is registered under the key id suggested by the token.

    :ivar str kid: Key id from the token header.

    """
    def __init__(self, kid: str, *args: Any) -> None:
        super().__init__(*args)
        self.kid = kid

    def __str__(self) -> str:
        return 'No verifier for key id {0!r}'.format(self.kid)
