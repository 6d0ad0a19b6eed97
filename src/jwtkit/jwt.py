"""JSON Web Token.

https://tools.ietf.org/html/rfc7519

Encoding and decoding of compact JWS tokens (JWTs) with a JSON payload.
Signing keys are wrapped in :class:`Signer`, verification keys in
:class:`Verifier`, and :func:`unmarshal` picks the verification key from a
:class:`VerifierSet`.

"""
import binascii
import json
import logging
from typing import Any
from typing import Dict
from typing import Iterable
from typing import Iterator
from typing import Optional
from typing import Tuple
from typing import Type
from typing import Union

import josepy as jose

from jwtkit import errors
from jwtkit import jwa
from jwtkit.token import TokenBuffer

logger = logging.getLogger(__name__)

JWT_TYPE = 'JWT'

_SEPARATORS = (',', ':')


class Fixed(jose.Field):
    """Field that must always hold one value."""

    def __init__(self, json_name: str, value: Any) -> None:
        self.value = value
        super().__init__(json_name=json_name, default=value, omitempty=False)

    def decode(self, value: Any) -> Any:
        if value != self.value:
            raise jose.DeserializationError('Expected {0!r}'.format(self.value))
        return self.value


class Header(jose.JSONObjectWithFields):
    """JWT header.

    Subclass to carry additional header parameters and pass the subclass
    as ``header_cls``.

    """
    typ: str = Fixed('typ', JWT_TYPE)
    alg: str = jose.field('alg')
    kid: str = jose.field('kid', omitempty=True, default='')

    @property
    def algorithm(self) -> jwa.Algorithm:
        """Resolved ``alg``.

        :raises jwtkit.errors.UnknownAlgorithmError: if ``alg`` is unknown.

        """
        return jwa.Algorithm.from_name(self.alg)


class Signer(jose.ImmutableMap):
    """JWT signer.

    :ivar jwtkit.jwa.Signer signer: Key bound to its algorithm.
    :ivar jwtkit.jwa.Algorithm algorithm: Announced in the ``alg`` header.
    :ivar str key_id: Announced in the ``kid`` header, empty for none.

    """
    __slots__ = ('signer', 'algorithm', 'key_id')

    @property
    def size(self) -> int:
        """Length of produced signatures."""
        return self.signer.size

    @property
    def available(self) -> bool:
        """Is the algorithm supported by the crypto backend?"""
        return self.signer.jwa.available()

    def sign(self, unsigned: bytes) -> bytes:
        """Sign ``unsigned``."""
        return self.signer.sign(unsigned)


class Verifier(jose.ImmutableMap):
    """JWT verifier.

    :ivar jwtkit.jwa.Verifier verifier: Key bound to its algorithm.
    :ivar jwtkit.jwa.Algorithm algorithm: Accepted ``alg``.
    :ivar str key_id: Key id, empty for none.

    """
    __slots__ = ('verifier', 'algorithm', 'key_id')

    @property
    def available(self) -> bool:
        """Is the algorithm supported by the crypto backend?"""
        return self.verifier.jwa.available()

    def verify(self, alg: jwa.Algorithm, kid_suggest: str, signed: bytes,
               signature: bytes) -> str:
        """Verify a single token signature.

        :param str kid_suggest: Key id from the token, unused by a single
            verifier.

        :returns: Key id of this verifier.

        :raises jwtkit.errors.VerificationError: if verification fails.

        """
        if alg != self.algorithm:
            raise errors.SignatureInvalidError(
                'Token algorithm {0} does not match verifier algorithm {1}'.format(
                    alg.jws_name, self.algorithm.jws_name))
        self.verifier.verify(signed, signature)
        return self.key_id


class VerifierSet:
    """Verifiers selected by key id and algorithm.

    A token whose ``kid`` names a verifier of the token's algorithm is
    checked against that verifier only when ``key_id_must_match`` is set.
    Otherwise every verifier of the token's algorithm is tried in order.

    Verifiers for ``none`` accept unsigned tokens, and are refused unless
    ``allow_none`` is set.

    """

    def __init__(self, verifiers: Iterable[Verifier], key_id_must_match: bool = False,
                 allow_none: bool = False) -> None:
        self._verifiers: Tuple[Verifier, ...] = tuple(verifiers)
        self._by_key_id: Dict[str, Verifier] = {}
        for verifier in self._verifiers:
            if verifier.algorithm == jwa.Algorithm.NONE and not allow_none:
                raise ValueError('Verifier for "none" requires allow_none=True')
            if verifier.key_id:
                self._by_key_id[verifier.key_id] = verifier
        self.key_id_must_match = key_id_must_match

    def __iter__(self) -> Iterator[Verifier]:
        return iter(self._verifiers)

    def __len__(self) -> int:
        return len(self._verifiers)

    def verify(self, alg: jwa.Algorithm, kid_suggest: str, signed: bytes,
               signature: bytes) -> str:
        """Verify a token signature.

        :returns: Key id of the verifier that accepted the signature.

        :raises jwtkit.errors.NoVerifierForKeyIDError: if
            ``key_id_must_match`` is set and no verifier of ``alg`` has
            key id ``kid_suggest``.
        :raises jwtkit.errors.VerificationError: if no verifier accepts
            the signature.

        """
        suggested = self._by_key_id.get(kid_suggest) if kid_suggest else None
        if suggested is not None and suggested.algorithm != alg:
            suggested = None

        if suggested is not None:
            try:
                return suggested.verify(alg, kid_suggest, signed, signature)
            except errors.VerificationError as error:
                if self.key_id_must_match:
                    raise
                logger.debug('Verifier %r rejected signature: %s', kid_suggest, error)
        elif self.key_id_must_match:
            raise errors.NoVerifierForKeyIDError(kid_suggest)

        for verifier in self._verifiers:
            if verifier is suggested or verifier.algorithm != alg:
                continue
            try:
                return verifier.verify(alg, kid_suggest, signed, signature)
            except errors.VerificationError as error:
                logger.debug('Verifier %r rejected signature: %s', verifier.key_id, error)
        raise errors.SignatureInvalidError('No verifier accepted the signature')


def _as_bytes(data: Union[bytes, str]) -> bytes:
    if isinstance(data, str):
        try:
            return data.encode('ascii')
        except UnicodeEncodeError as error:
            raise errors.MalformedTokenError('Token is not ASCII') from error
    return data


def _dumps(obj: Any) -> bytes:
    try:
        return json.dumps(obj, default=jose.JSONDeSerializable.json_dump_default,
                          separators=_SEPARATORS).encode('utf-8')
    except (TypeError, ValueError) as error:
        raise jose.SerializationError(error) from error


def marshal(payload: Any, signer: Signer, header: Optional[Header] = None) -> bytes:
    """Encode and sign a JWT.

    :param payload: JSON-serializable claims; :class:`josepy.JSONDeSerializable`
        objects are serialized through their ``to_partial_json``.
    :param Signer signer: Signing key.
    :param Header header: Header carrying extra parameters. ``alg`` and
        ``kid`` are overwritten from ``signer``.

    :returns: Compact serialization.
    :rtype: bytes

    """
    if header is None:
        header = Header(alg=signer.algorithm.jws_name)
    header = header.update(alg=signer.algorithm.jws_name, kid=signer.key_id)
    header_json = header.json_dumps(separators=_SEPARATORS).encode('utf-8')
    payload_json = _dumps(payload)

    size = signer.size
    token = TokenBuffer.allocate(len(header_json), len(payload_json), size)
    token.encode(token.header, header_json)
    token.encode(token.payload, payload_json)

    signature = signer.sign(token.signed)
    if len(signature) != size:
        raise errors.Error('Signer announced {0} signature bytes, produced {1}'.format(
            size, len(signature)))
    token.encode(token.signature, signature)
    return bytes(token)


def _decode_json(region: memoryview, exc_cls: Type[errors.Error]) -> Any:
    try:
        return json.loads(TokenBuffer.decode(region).decode('utf-8'))
    except (binascii.Error, ValueError) as error:
        raise exc_cls(str(error)) from error


def _decode_header(token: TokenBuffer, header_cls: Type[Header]) -> Header:
    jobj = _decode_json(token.header, errors.MalformedHeaderError)
    if not isinstance(jobj, dict):
        raise errors.MalformedHeaderError('Header must be a JSON object')
    try:
        return header_cls.from_json(jobj)
    except jose.DeserializationError as error:
        raise errors.MalformedHeaderError(str(error)) from error


def _decode_payload(token: TokenBuffer, payload_cls: Optional[Type[jose.JSONDeSerializable]]
                    ) -> Any:
    jobj = _decode_json(token.payload, errors.MalformedPayloadError)
    if payload_cls is None:
        return jobj
    try:
        return payload_cls.from_json(jobj)
    except jose.DeserializationError as error:
        raise errors.MalformedPayloadError(str(error)) from error


def unmarshal_with_header(data: Union[bytes, str], verifiers: Union[Verifier, VerifierSet],
                          payload_cls: Optional[Type[jose.JSONDeSerializable]] = None,
                          header_cls: Type[Header] = Header) -> Tuple[Header, Any, str]:
    """Verify and decode a JWT.

    The payload is decoded only after the signature verified.

    :param data: Compact serialization.
    :param verifiers: A single :class:`Verifier` or a :class:`VerifierSet`.
    :param payload_cls: Optional class whose ``from_json`` receives the
        decoded payload.
    :param header_cls: :class:`Header` subclass to decode the header with.

    :returns: Header, payload and the key id of the verifier used.

    """
    token = TokenBuffer.parse(_as_bytes(data))
    header = _decode_header(token, header_cls)
    alg = header.algorithm
    try:
        signature = TokenBuffer.decode(token.signature)
    except binascii.Error as error:
        raise errors.MalformedSignatureError(str(error)) from error
    kid = verifiers.verify(alg, header.kid, token.signed, signature)
    return header, _decode_payload(token, payload_cls), kid


def unmarshal(data: Union[bytes, str], verifiers: Union[Verifier, VerifierSet],
              payload_cls: Optional[Type[jose.JSONDeSerializable]] = None) -> Tuple[Any, str]:
    """Verify and decode a JWT.

    :returns: Payload and the key id of the verifier used.

    """
    _, payload, kid = unmarshal_with_header(data, verifiers, payload_cls)
    return payload, kid


def unmarshal_unverified(data: Union[bytes, str],
                         payload_cls: Optional[Type[jose.JSONDeSerializable]] = None,
                         header_cls: Type[Header] = Header) -> Tuple[Header, Any]:
    """Decode a JWT without checking its signature.

    Nothing returned from here may be trusted.

    """
    token = TokenBuffer.parse(_as_bytes(data))
    header = _decode_header(token, header_cls)
    return header, _decode_payload(token, payload_cls)

