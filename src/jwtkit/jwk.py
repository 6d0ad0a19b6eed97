"""JSON Web Key.

https://tools.ietf.org/html/rfc7517

JWK documents are turned into :class:`jwtkit.jwt.Signer` and
:class:`jwtkit.jwt.Verifier` objects by the :class:`KeyParser` registered in
a :class:`jwtkit.registry.Registry` for the document's ``kty``.

"""
import abc
import enum
import json
import logging
import re
import sys
from typing import Any
from typing import Dict
from typing import Mapping
from typing import Optional
from typing import Tuple
from typing import Type
from typing import TYPE_CHECKING
from typing import Union

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric import rsa
import josepy as jose

from jwtkit import errors
from jwtkit import jwa
from jwtkit import jwt

if TYPE_CHECKING:
    from jwtkit.registry import Registry  # pragma: no cover

logger = logging.getLogger(__name__)

SIGN = 'sign'
VERIFY = 'verify'


class KeyType(enum.IntEnum):
    """JWK ``kty``."""
    EC = 1
    RSA = 2
    OCT = 3

    @property
    def jwk_name(self) -> str:
        return _KEY_TYPE_NAMES[self]

    @classmethod
    def from_name(cls, name: Any) -> 'KeyType':
        """Resolve a ``kty``.

        :raises jwtkit.errors.UnknownKeyTypeError: if ``name`` is unknown.

        """
        for kty, kty_name in _KEY_TYPE_NAMES.items():
            if kty_name == name:
                return kty
        raise errors.UnknownKeyTypeError(name)


_KEY_TYPE_NAMES = {KeyType.EC: 'EC', KeyType.RSA: 'RSA', KeyType.OCT: 'oct'}

_B64URL = re.compile(r'[A-Za-z0-9_-]+\Z')


def encode_b64uint(value: int) -> str:
    """Encode a non-negative integer as Base64urlUInt."""
    if value < 0:
        raise ValueError('Base64urlUInt cannot hold negative values')
    length = max(1, (value.bit_length() + 7) // 8)
    return jose.encode_b64jose(value.to_bytes(length, 'big'))


def decode_b64uint(data: Any) -> int:
    """Decode Base64urlUInt.

    :raises josepy.errors.DeserializationError: if ``data`` is empty or
        not base64url text.

    """
    if not isinstance(data, str) or not _B64URL.match(data):
        raise jose.DeserializationError('Expected non-empty base64url text')
    return int.from_bytes(jose.decode_b64jose(data), 'big')


def decode_b64int(data: Any) -> int:
    """Decode Base64urlUInt that must fit a platform integer."""
    value = decode_b64uint(data)
    if value > sys.maxsize:
        raise jose.DeserializationError('Value does not fit a platform integer')
    return value


def _decode_param(jobj: Mapping[str, Any], name: str, decoder: Any = decode_b64uint) -> int:
    if name not in jobj:
        raise errors.InvalidKeyFieldError(name, 'missing')
    try:
        return decoder(jobj[name])
    except jose.DeserializationError as error:
        raise errors.InvalidKeyFieldError(name, error) from error


class JWKEnvelope(jose.JSONObjectWithFields):
    """Members shared by every JWK."""
    kty: Optional[str] = jose.field('kty', omitempty=True)
    kid: str = jose.field('kid', omitempty=True, default='')
    key_ops: Tuple[str, ...] = jose.field('key_ops', omitempty=True, default=())
    alg: Optional[str] = jose.field('alg', omitempty=True)

    @key_ops.decoder  # type: ignore[no-redef,attr-defined,union-attr]
    def key_ops(value: Any) -> Tuple[str, ...]:  # type: ignore[misc]  # pylint: disable=no-self-argument,missing-function-docstring
        if not isinstance(value, list):
            raise jose.DeserializationError('key_ops must be a list')
        return tuple(value)

    @property
    def key_type(self) -> KeyType:
        if self.kty is None:
            raise errors.InvalidKeyFieldError('kty', 'missing')
        return KeyType.from_name(self.kty)

    @property
    def algorithm(self) -> Optional[jwa.Algorithm]:
        """Resolved ``alg``, or ``None`` if absent."""
        if self.alg is None:
            return None
        return jwa.Algorithm.from_name(self.alg)

    def check_operation(self, operation: str) -> None:
        """Require ``operation`` in ``key_ops``."""
        if operation not in self.key_ops:
            raise errors.CapabilityMismatchError(operation)


class KeyParser(metaclass=abc.ABCMeta):
    """Builds signers and verifiers from one ``kty``."""

    @abc.abstractmethod
    def parse_signer(self, base: JWKEnvelope, jobj: Mapping[str, Any],
                     registry: 'Registry') -> jwt.Signer:  # pragma: no cover
        """Build a signer from private key members."""
        raise NotImplementedError()

    @abc.abstractmethod
    def parse_verifier(self, base: JWKEnvelope, jobj: Mapping[str, Any],
                       registry: 'Registry') -> jwt.Verifier:  # pragma: no cover
        """Build a verifier from public key members."""
        raise NotImplementedError()


CURVES: Dict[str, Tuple[Type[ec.EllipticCurve], jwa.Algorithm]] = {
    'P-256': (ec.SECP256R1, jwa.Algorithm.ES256),
    'P-384': (ec.SECP384R1, jwa.Algorithm.ES384),
    'P-521': (ec.SECP521R1, jwa.Algorithm.ES512),
}


class ECKeyParser(KeyParser):
    """Parser for ``kty`` "EC"."""
    curves = CURVES

    def _curve(self, base: JWKEnvelope,
               jobj: Mapping[str, Any]) -> Tuple[ec.EllipticCurve, jwa.Algorithm]:
        crv = jobj.get('crv')
        try:
            curve_cls, alg = self.curves[crv]
        except (KeyError, TypeError):
            raise errors.InvalidKeyFieldError('crv', 'unsupported curve {0!r}'.format(crv)) from None
        if base.algorithm is not None and base.algorithm != alg:
            raise errors.InvalidKeyError('Curve {0} cannot be used with {1}'.format(crv, base.alg))
        return curve_cls(), alg

    def parse_signer(self, base: JWKEnvelope, jobj: Mapping[str, Any],
                     registry: 'Registry') -> jwt.Signer:
        curve, alg = self._curve(base, jobj)
        d = _decode_param(jobj, 'd')
        try:
            key = ec.derive_private_key(d, curve)
        except ValueError as error:
            logger.debug(error, exc_info=True)
            raise errors.InvalidKeyError('Invalid EC private scalar') from error
        if 'x' in jobj or 'y' in jobj:
            numbers = key.public_key().public_numbers()
            if (_decode_param(jobj, 'x'), _decode_param(jobj, 'y')) != (numbers.x, numbers.y):
                raise errors.InvalidKeyError('Public point does not match private scalar')
        return registry.new_signer(alg, base.kid, key)

    def parse_verifier(self, base: JWKEnvelope, jobj: Mapping[str, Any],
                       registry: 'Registry') -> jwt.Verifier:
        curve, alg = self._curve(base, jobj)
        x = _decode_param(jobj, 'x')
        y = _decode_param(jobj, 'y')
        try:
            key = ec.EllipticCurvePublicNumbers(x, y, curve).public_key()
        except ValueError as error:
            logger.debug(error, exc_info=True)
            raise errors.InvalidKeyError('Point is not on the curve') from error
        return registry.new_verifier(alg, base.kid, key)


RS_ALGORITHMS = frozenset([jwa.Algorithm.RS256, jwa.Algorithm.RS384, jwa.Algorithm.RS512])

_CRT_PARAMS = ('p', 'q', 'dp', 'dq', 'qi')


class RSAKeyParser(KeyParser):
    """Parser for ``kty`` "RSA"."""

    @staticmethod
    def _algorithm(base: JWKEnvelope) -> jwa.Algorithm:
        alg = base.algorithm
        if alg is None:
            raise errors.InvalidKeyFieldError('alg', 'missing')
        if alg not in RS_ALGORITHMS:
            raise errors.InvalidKeyError('RSA keys cannot be used with {0}'.format(base.alg))
        return alg

    @staticmethod
    def _public_numbers(jobj: Mapping[str, Any]) -> rsa.RSAPublicNumbers:
        return rsa.RSAPublicNumbers(e=_decode_param(jobj, 'e', decode_b64int),
                                    n=_decode_param(jobj, 'n'))

    def parse_signer(self, base: JWKEnvelope, jobj: Mapping[str, Any],
                     registry: 'Registry') -> jwt.Signer:
        alg = self._algorithm(base)
        public_numbers = self._public_numbers(jobj)
        n, e = public_numbers.n, public_numbers.e
        d = _decode_param(jobj, 'd')

        if any(name in jobj for name in _CRT_PARAMS):
            # partial CRT members fail on the first missing one
            p, q, dp, dq, qi = (_decode_param(jobj, name) for name in _CRT_PARAMS)
        else:
            if n < 3 or e < 3 or d < 1:
                raise errors.InvalidKeyError('Invalid RSA parameters')
            try:
                p, q = rsa.rsa_recover_prime_factors(n, e, d)
            except ValueError as error:
                logger.debug(error, exc_info=True)
                raise errors.InvalidKeyError('Cannot recover RSA prime factors') from error
            dp = rsa.rsa_crt_dmp1(d, p)
            dq = rsa.rsa_crt_dmq1(d, q)
            qi = rsa.rsa_crt_iqmp(p, q)

        try:
            key = rsa.RSAPrivateNumbers(p, q, d, dp, dq, qi, public_numbers).private_key()
        except ValueError as error:
            logger.debug(error, exc_info=True)
            raise errors.InvalidKeyError('RSA private key failed consistency check') from error
        return registry.new_signer(alg, base.kid, key)

    def parse_verifier(self, base: JWKEnvelope, jobj: Mapping[str, Any],
                       registry: 'Registry') -> jwt.Verifier:
        alg = self._algorithm(base)
        try:
            key = self._public_numbers(jobj).public_key()
        except ValueError as error:
            logger.debug(error, exc_info=True)
            raise errors.InvalidKeyError('Invalid RSA public key') from error
        return registry.new_verifier(alg, base.kid, key)


def _load(data: Union[bytes, str, Mapping[str, Any]]) -> Tuple[JWKEnvelope, Mapping[str, Any]]:
    if isinstance(data, (bytes, str)):
        try:
            jobj = json.loads(data)
        except ValueError as error:
            raise errors.MalformedKeyError(str(error)) from error
    else:
        jobj = data
    if not isinstance(jobj, Mapping):
        raise errors.MalformedKeyError('JWK must be a JSON object')
    try:
        return JWKEnvelope.from_json(jobj), jobj
    except jose.DeserializationError as error:
        raise errors.MalformedKeyError(str(error)) from error


def parse_signer(data: Union[bytes, str, Mapping[str, Any]], registry: 'Registry') -> jwt.Signer:
    """Build a signer from a private JWK.

    :param data: JSON text or an already decoded JSON object.

    :raises jwtkit.errors.CapabilityMismatchError: if ``key_ops`` does
        not include "sign".

    """
    base, jobj = _load(data)
    base.check_operation(SIGN)
    return registry.key_parser(base.key_type).parse_signer(base, jobj, registry)


def parse_verifier(data: Union[bytes, str, Mapping[str, Any]],
                   registry: 'Registry') -> jwt.Verifier:
    """Build a verifier from a public JWK.

    :raises jwtkit.errors.CapabilityMismatchError: if ``key_ops`` does
        not include "verify".

    """
    base, jobj = _load(data)
    base.check_operation(VERIFY)
    return registry.key_parser(base.key_type).parse_verifier(base, jobj, registry)


def _curve_name(curve: ec.EllipticCurve) -> Tuple[str, jwa.Algorithm]:
    for crv, (curve_cls, alg) in CURVES.items():
        if isinstance(curve, curve_cls):
            return crv, alg
    raise errors.InvalidKeyError('Unsupported curve {0}'.format(curve.name))


def public_jwk(key: Any, alg: jwa.Algorithm, kid: str = '') -> Dict[str, Any]:
    """Export a verify-only JWK.

    :param key: `cryptography` EC or RSA key, private or public, or a
        :class:`jwtkit.jwt.Signer` / :class:`jwtkit.jwt.Verifier`, whose
        algorithm and key id then take precedence.

    :returns: JSON object, ready for :func:`json.dumps`.

    """
    if isinstance(key, jwt.Signer):
        key, alg, kid = key.signer.key, key.algorithm, key.key_id
    elif isinstance(key, jwt.Verifier):
        key, alg, kid = key.verifier.key, key.algorithm, key.key_id
    if isinstance(key, (ec.EllipticCurvePrivateKey, rsa.RSAPrivateKey)):
        key = key.public_key()

    if isinstance(key, ec.EllipticCurvePublicKey):
        crv, curve_alg = _curve_name(key.curve)
        if alg != curve_alg:
            raise errors.InvalidKeyError('Curve {0} cannot be used with {1}'.format(
                crv, alg.jws_name))
        numbers = key.public_numbers()
        size = (key.curve.key_size + 7) // 8
        jobj = {
            'kty': KeyType.EC.jwk_name,
            'crv': crv,
            'x': jose.encode_b64jose(numbers.x.to_bytes(size, 'big')),
            'y': jose.encode_b64jose(numbers.y.to_bytes(size, 'big')),
        }
    elif isinstance(key, rsa.RSAPublicKey):
        if alg not in RS_ALGORITHMS:
            raise errors.InvalidKeyError('RSA keys cannot be used with {0}'.format(alg.jws_name))
        numbers = key.public_numbers()
        jobj = {
            'kty': KeyType.RSA.jwk_name,
            'n': encode_b64uint(numbers.n),
            'e': encode_b64uint(numbers.e),
        }
    else:
        raise errors.InvalidKeyError('Cannot export {0} as JWK'.format(type(key)))

    jobj['alg'] = alg.jws_name
    jobj['key_ops'] = [VERIFY]
    if kid:
        jobj['kid'] = kid
    return jobj
