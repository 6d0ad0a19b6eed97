"""Algorithm and key type registry."""
import logging
from typing import Any
from typing import List
from typing import Mapping
from typing import Optional
from typing import Union

from jwtkit import errors
from jwtkit import jwa
from jwtkit import jwk
from jwtkit import jwt

logger = logging.getLogger(__name__)


class Registry:
    """Algorithm implementations and JWK key parsers.

    Populate a registry at startup, optionally :meth:`freeze` it, and share
    it read-only afterwards. Re-registering an identifier replaces the
    earlier entry.

    """

    def __init__(self) -> None:
        self._algorithms: List[Optional[jwa.JWASignature]] = [None] * len(jwa.Algorithm)
        self._key_parsers: List[Optional[jwk.KeyParser]] = [None] * (len(jwk.KeyType) + 1)
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Refuse all further registrations."""
        self._frozen = True

    def _check_writable(self) -> None:
        if self._frozen:
            raise errors.RegistrationError('Registry is frozen')

    def register_algorithm(self, alg: jwa.Algorithm,
                           implementation: jwa.JWASignature) -> jwa.JWASignature:
        """Register ``implementation`` for ``alg``.

        :raises jwtkit.errors.RegistrationError: if ``alg`` is not a
            registrable identifier, if ``implementation`` is for another
            algorithm or if the registry is frozen.

        """
        self._check_writable()
        if not 0 < alg < len(self._algorithms):
            raise errors.RegistrationError('Cannot register algorithm #{0}'.format(int(alg)))
        if implementation.alg != alg:
            raise errors.RegistrationError('Cannot register {0} implementation as {1}'.format(
                implementation.name, jwa.Algorithm(alg).jws_name))
        logger.debug('Registering %r for %s', implementation, jwa.Algorithm(alg).jws_name)
        self._algorithms[alg] = implementation
        return implementation

    def register_key_parser(self, kty: jwk.KeyType, parser: jwk.KeyParser) -> jwk.KeyParser:
        """Register ``parser`` for ``kty``.

        :raises jwtkit.errors.RegistrationError: if ``kty`` is not a key
            type or if the registry is frozen.

        """
        self._check_writable()
        if not 0 < kty < len(self._key_parsers):
            raise errors.RegistrationError('Cannot register key type #{0}'.format(int(kty)))
        logger.debug('Registering %s for key type %s',
                     parser.__class__.__name__, jwk.KeyType(kty).jwk_name)
        self._key_parsers[kty] = parser
        return parser

    def _lookup(self, alg: jwa.Algorithm) -> Optional[jwa.JWASignature]:
        if 0 < alg < len(self._algorithms):
            return self._algorithms[alg]
        return None

    def available(self, alg: jwa.Algorithm) -> bool:
        """Is ``alg`` registered and supported by the crypto backend?"""
        implementation = self._lookup(alg)
        return implementation is not None and implementation.available()

    def algorithm(self, alg: jwa.Algorithm) -> jwa.JWASignature:
        """Registered implementation of ``alg``.

        :raises jwtkit.errors.UnavailableAlgorithmError: if ``alg`` is
            not registered or not available.

        """
        implementation = self._lookup(alg)
        if implementation is None or not implementation.available():
            raise errors.UnavailableAlgorithmError(alg)
        return implementation

    def new(self, alg: jwa.Algorithm) -> jwa.SignatureEngine:
        """Fresh signature engine for ``alg``."""
        return self.algorithm(alg).new()

    def new_signer(self, alg: jwa.Algorithm, kid: str, key: Any) -> jwt.Signer:
        """Wrap private ``key`` for signing JWTs with ``alg``.

        :raises jwtkit.errors.UnavailableAlgorithmError: if ``alg`` is
            not available.
        :raises jwtkit.errors.InvalidKeyError: if ``key`` does not fit
            ``alg``.

        """
        signer = self.algorithm(alg).new_signer(key)
        return jwt.Signer(signer=signer, algorithm=jwa.Algorithm(alg), key_id=kid)

    def new_verifier(self, alg: jwa.Algorithm, kid: str, key: Any) -> jwt.Verifier:
        """Wrap public ``key`` for verifying JWTs signed with ``alg``."""
        verifier = self.algorithm(alg).new_verifier(key)
        return jwt.Verifier(verifier=verifier, algorithm=jwa.Algorithm(alg), key_id=kid)

    def key_parser(self, kty: jwk.KeyType) -> jwk.KeyParser:
        """Registered parser for ``kty``.

        :raises jwtkit.errors.UnavailableKeyTypeError: if no parser is
            registered for ``kty``.

        """
        parser = self._key_parsers[kty] if 0 < kty < len(self._key_parsers) else None
        if parser is None:
            raise errors.UnavailableKeyTypeError(jwk.KeyType(kty).jwk_name)
        return parser

    def parse_signer(self, data: Union[bytes, str, Mapping[str, Any]]) -> jwt.Signer:
        """Build a signer from a private JWK."""
        return jwk.parse_signer(data, self)

    def parse_verifier(self, data: Union[bytes, str, Mapping[str, Any]]) -> jwt.Verifier:
        """Build a verifier from a public JWK."""
        return jwk.parse_verifier(data, self)


def default_registry() -> Registry:
    """Registry with every built-in algorithm, and EC and RSA key parsers."""
    registry = Registry()
    for implementation in jwa.ALGORITHMS:
        registry.register_algorithm(implementation.alg, implementation)
    registry.register_key_parser(jwk.KeyType.EC, jwk.ECKeyParser())
    registry.register_key_parser(jwk.KeyType.RSA, jwk.RSAKeyParser())
    return registry
