"""JSON Web Algorithms.

https://tools.ietf.org/html/rfc7518

Every algorithm is a :class:`JWASignature`, a stateless description of the
hash, key type and signature encoding. Actual work happens in a
:class:`SignatureEngine` obtained from :meth:`JWASignature.new`, which
accumulates the signing input and then signs or verifies its digest::

  engine = ES256.new()
  engine.write(b'header.payload')
  signature = engine.sign(private_key)

Engines carry hash state and must not be shared between messages or threads.

"""
import abc
import enum
import logging
from typing import Any
from typing import Tuple
from typing import Type

import cryptography.exceptions
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric import utils as asym_utils

from jwtkit import errors

logger = logging.getLogger(__name__)


class Algorithm(enum.IntEnum):
    """JWS algorithm identifier.

    Values are dense so that registries can be plain lists indexed by
    identifier. ``INVALID`` is never registered.

    """
    INVALID = 0
    NONE = 1
    ES256 = 2
    ES384 = 3
    ES512 = 4
    RS256 = 5
    RS384 = 6
    RS512 = 7

    @property
    def jws_name(self) -> str:
        """Name used in the ``alg`` header parameter."""
        if self is Algorithm.INVALID:
            raise errors.UnknownAlgorithmError(self)
        if self is Algorithm.NONE:
            return 'none'
        return self.name

    @classmethod
    def from_name(cls, name: Any) -> 'Algorithm':
        """Resolve an ``alg`` header parameter.

        :raises jwtkit.errors.UnknownAlgorithmError: if ``name`` is not
            one of the supported algorithm names.

        """
        try:
            return _BY_NAME[name]
        except (KeyError, TypeError):
            raise errors.UnknownAlgorithmError(name) from None


_BY_NAME = {alg.jws_name: alg for alg in Algorithm if alg is not Algorithm.INVALID}


def pack_signature(r: int, s: int, key_size: int) -> bytes:
    """Pack ECDSA ``(r, s)`` as two fixed-width big-endian fields."""
    return r.to_bytes(key_size, 'big') + s.to_bytes(key_size, 'big')


def unpack_signature(signature: bytes, key_size: int) -> Tuple[int, int]:
    """Split a fixed-width ECDSA signature into ``(r, s)``.

    :raises jwtkit.errors.MalformedSignatureError: if the signature is
        not exactly ``2 * key_size`` bytes long.

    """
    if len(signature) != 2 * key_size:
        raise errors.MalformedSignatureError(
            'Expected {0} signature bytes, got {1}'.format(2 * key_size, len(signature)))
    return (int.from_bytes(signature[:key_size], 'big'),
            int.from_bytes(signature[key_size:], 'big'))


class SignatureEngine(metaclass=abc.ABCMeta):
    """Per-message signature computation.

    :meth:`sign` and :meth:`verify` operate on everything passed to
    :meth:`write` since the engine was created or last :meth:`reset`.

    """

    @property
    @abc.abstractmethod
    def block_size(self) -> int:  # pragma: no cover
        """Block size of the underlying hash."""
        raise NotImplementedError()

    @abc.abstractmethod
    def write(self, data: bytes) -> int:  # pragma: no cover
        """Feed signing input, return the number of bytes consumed."""
        raise NotImplementedError()

    @abc.abstractmethod
    def reset(self) -> None:  # pragma: no cover
        """Discard all written data."""
        raise NotImplementedError()

    @abc.abstractmethod
    def size(self, key: Any = None) -> int:  # pragma: no cover
        """Length in bytes of signatures produced with ``key``."""
        raise NotImplementedError()

    @abc.abstractmethod
    def validate(self, key: Any) -> None:  # pragma: no cover
        """Check that private ``key`` can sign with this algorithm.

        :raises jwtkit.errors.InvalidKeyError: if it cannot.

        """
        raise NotImplementedError()

    @abc.abstractmethod
    def validate_public(self, key: Any) -> None:  # pragma: no cover
        """Check that public ``key`` can verify with this algorithm.

        :raises jwtkit.errors.InvalidKeyError: if it cannot.

        """
        raise NotImplementedError()

    @abc.abstractmethod
    def sign(self, key: Any) -> bytes:  # pragma: no cover
        """Sign the written data with private ``key``."""
        raise NotImplementedError()

    @abc.abstractmethod
    def verify(self, signature: bytes, key: Any) -> None:  # pragma: no cover
        """Verify ``signature`` over the written data with public ``key``.

        :raises jwtkit.errors.VerificationError: if verification fails.

        """
        raise NotImplementedError()


class _HashingEngine(SignatureEngine):  # pylint: disable=abstract-method

    def __init__(self, hash_: hashes.HashAlgorithm) -> None:
        self._hash_algorithm = hash_
        self._hash = hashes.Hash(hash_)

    @property
    def block_size(self) -> int:
        return self._hash_algorithm.block_size or 0

    def write(self, data: bytes) -> int:
        self._hash.update(data)
        return len(data)

    def reset(self) -> None:
        self._hash = hashes.Hash(self._hash_algorithm)

    def digest(self) -> bytes:
        """Digest of the written data. Does not consume the hash state."""
        return self._hash.copy().finalize()


class _ESEngine(_HashingEngine):

    def __init__(self, jwa: '_JWAES') -> None:
        super().__init__(jwa.hash)
        self.jwa = jwa

    def size(self, key: Any = None) -> int:
        return 2 * self.jwa.key_size

    def _check_curve(self, key: Any) -> None:
        if not isinstance(key.curve, self.jwa.curve):
            raise errors.InvalidKeyError(
                'Invalid key curve {0}, {1} requires {2}'.format(
                    key.curve.name, self.jwa.name, self.jwa.curve.name))

    def validate(self, key: Any) -> None:
        if not isinstance(key, ec.EllipticCurvePrivateKey):
            raise errors.InvalidKeyError(
                '{0} requires an EC private key, got {1}'.format(self.jwa.name, type(key)))
        self._check_curve(key)

    def validate_public(self, key: Any) -> None:
        if not isinstance(key, ec.EllipticCurvePublicKey):
            raise errors.InvalidKeyError(
                '{0} requires an EC public key, got {1}'.format(self.jwa.name, type(key)))
        self._check_curve(key)

    def sign(self, key: Any) -> bytes:
        self.validate(key)
        der = key.sign(self.digest(), ec.ECDSA(asym_utils.Prehashed(self._hash_algorithm)))
        r, s = asym_utils.decode_dss_signature(der)
        return pack_signature(r, s, self.jwa.key_size)

    def verify(self, signature: bytes, key: Any) -> None:
        self.validate_public(key)
        r, s = unpack_signature(signature, self.jwa.key_size)
        try:
            key.verify(asym_utils.encode_dss_signature(r, s), self.digest(),
                       ec.ECDSA(asym_utils.Prehashed(self._hash_algorithm)))
        except cryptography.exceptions.InvalidSignature as error:
            logger.debug(error, exc_info=True)
            raise errors.SignatureInvalidError('ECDSA verification failed') from error


# DigestInfo prefix of every SHA-2 hash, and the minimum PKCS#1 v1.5 padding
_DIGEST_INFO_PREFIX_LENGTH = 19
_PKCS1_OVERHEAD = 11


class _RSEngine(_HashingEngine):

    def __init__(self, jwa: '_JWARS') -> None:
        super().__init__(jwa.hash)
        self.jwa = jwa
        self.padding = padding.PKCS1v15()

    def size(self, key: Any = None) -> int:
        if key is None:
            raise errors.InvalidKeyError('RSA signature size depends on the key')
        return (key.key_size + 7) // 8

    def validate(self, key: Any) -> None:
        if not isinstance(key, rsa.RSAPrivateKey):
            raise errors.InvalidKeyError(
                '{0} requires an RSA private key, got {1}'.format(self.jwa.name, type(key)))
        minimum = _DIGEST_INFO_PREFIX_LENGTH + self._hash_algorithm.digest_size + _PKCS1_OVERHEAD
        if self.size(key) < minimum:
            raise errors.InvalidKeyError(
                '{0} needs a modulus of at least {1} bytes, key has {2}'.format(
                    self.jwa.name, minimum, self.size(key)))

    def validate_public(self, key: Any) -> None:
        if not isinstance(key, rsa.RSAPublicKey):
            raise errors.InvalidKeyError(
                '{0} requires an RSA public key, got {1}'.format(self.jwa.name, type(key)))

    def sign(self, key: Any) -> bytes:
        self.validate(key)
        try:
            return key.sign(self.digest(), self.padding,
                            asym_utils.Prehashed(self._hash_algorithm))
        except ValueError as error:
            logger.debug(error, exc_info=True)
            raise errors.InvalidKeyError(str(error)) from error

    def verify(self, signature: bytes, key: Any) -> None:
        self.validate_public(key)
        try:
            key.verify(bytes(signature), self.digest(), self.padding,
                       asym_utils.Prehashed(self._hash_algorithm))
        except cryptography.exceptions.InvalidSignature as error:
            logger.debug(error, exc_info=True)
            raise errors.SignatureInvalidError('RSA verification failed') from error


class _NoneEngine(SignatureEngine):

    @property
    def block_size(self) -> int:
        return 256

    def write(self, data: bytes) -> int:
        return len(data)

    def reset(self) -> None:
        pass

    def size(self, key: Any = None) -> int:
        return 0

    def validate(self, key: Any) -> None:
        pass

    def validate_public(self, key: Any) -> None:
        pass

    def sign(self, key: Any) -> bytes:
        return b''

    def verify(self, signature: bytes, key: Any) -> None:
        if len(signature) > 0:
            raise errors.SignatureInvalidError('"none" tokens must not carry a signature')


class Signer:
    """Private key bound to an algorithm.

    :ivar JWASignature jwa: Algorithm.
    :ivar key: `cryptography` private key (``None`` for "none").

    """

    def __init__(self, jwa: 'JWASignature', key: Any) -> None:
        jwa.new().validate(key)
        self.jwa = jwa
        self.key = key

    @property
    def size(self) -> int:
        """Length of signatures produced by :meth:`sign`."""
        return self.jwa.new().size(self.key)

    def sign(self, unsigned: bytes) -> bytes:
        """Sign ``unsigned``."""
        engine = self.jwa.new()
        engine.write(unsigned)
        return engine.sign(self.key)


class Verifier:
    """Public key bound to an algorithm.

    :ivar JWASignature jwa: Algorithm.
    :ivar key: `cryptography` public key (``None`` for "none").

    """

    def __init__(self, jwa: 'JWASignature', key: Any) -> None:
        jwa.new().validate_public(key)
        self.jwa = jwa
        self.key = key

    def verify(self, signed: bytes, signature: bytes) -> None:
        """Verify ``signature`` over ``signed``.

        :raises jwtkit.errors.VerificationError: if verification fails.

        """
        engine = self.jwa.new()
        engine.write(signed)
        engine.verify(signature, self.key)


class JWASignature(metaclass=abc.ABCMeta):
    """JSON Web Signature Algorithm.

    :ivar Algorithm alg: Identifier this implementation is for.

    """

    def __init__(self, alg: Algorithm) -> None:
        self.alg = alg

    @property
    def name(self) -> str:
        """JWS ``alg`` name."""
        return self.alg.jws_name

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, JWASignature):
            return NotImplemented
        return self.alg == other.alg

    def __hash__(self) -> int:
        return hash((self.__class__, self.alg))

    def __repr__(self) -> str:
        return self.name

    @abc.abstractmethod
    def available(self) -> bool:  # pragma: no cover
        """Are the required primitives supported by the crypto backend?"""
        raise NotImplementedError()

    @abc.abstractmethod
    def new(self) -> SignatureEngine:  # pragma: no cover
        """Create a fresh engine."""
        raise NotImplementedError()

    def new_signer(self, key: Any) -> Signer:
        """Bind private ``key``.

        :raises jwtkit.errors.InvalidKeyError: if ``key`` does not fit.

        """
        return Signer(self, key)

    def new_verifier(self, key: Any) -> Verifier:
        """Bind public ``key``.

        :raises jwtkit.errors.InvalidKeyError: if ``key`` does not fit.

        """
        return Verifier(self, key)


class _JWAES(JWASignature):

    def __init__(self, alg: Algorithm, hash_: Type[hashes.HashAlgorithm],
                 curve: Type[ec.EllipticCurve], key_size: int) -> None:
        super().__init__(alg)
        self.hash = hash_()
        self.curve = curve
        self.key_size = key_size

    def available(self) -> bool:
        backend = default_backend()
        return (backend.hash_supported(self.hash) and
                backend.elliptic_curve_signature_algorithm_supported(
                    ec.ECDSA(self.hash), self.curve()))

    def new(self) -> SignatureEngine:
        return _ESEngine(self)


class _JWARS(JWASignature):

    def __init__(self, alg: Algorithm, hash_: Type[hashes.HashAlgorithm]) -> None:
        super().__init__(alg)
        self.hash = hash_()

    def available(self) -> bool:
        backend = default_backend()
        return (backend.hash_supported(self.hash) and
                backend.rsa_padding_supported(padding.PKCS1v15()))

    def new(self) -> SignatureEngine:
        return _RSEngine(self)


class _JWANone(JWASignature):

    def __init__(self) -> None:
        super().__init__(Algorithm.NONE)

    def available(self) -> bool:
        return True

    def new(self) -> SignatureEngine:
        return _NoneEngine()


NONE = _JWANone()

ES256 = _JWAES(Algorithm.ES256, hashes.SHA256, ec.SECP256R1, (256 + 7) // 8)
ES384 = _JWAES(Algorithm.ES384, hashes.SHA384, ec.SECP384R1, (384 + 7) // 8)
ES512 = _JWAES(Algorithm.ES512, hashes.SHA512, ec.SECP521R1, (521 + 7) // 8)

RS256 = _JWARS(Algorithm.RS256, hashes.SHA256)
RS384 = _JWARS(Algorithm.RS384, hashes.SHA384)
RS512 = _JWARS(Algorithm.RS512, hashes.SHA512)

ALGORITHMS: Tuple[JWASignature, ...] = (NONE, ES256, ES384, ES512, RS256, RS384, RS512)
"""Built-in implementations, in identifier order."""
