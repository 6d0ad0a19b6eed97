"""Compact serialization buffer.

A token is ``B64(header) "." B64(payload) "." B64(signature)`` held in one
contiguous buffer. :class:`TokenBuffer` exposes the four interesting regions
as :class:`memoryview` slices so that neither encoding nor parsing copies the
token around.

"""
import binascii
import re
from typing import Union

import josepy as jose

from jwtkit import errors

DOT = ord('.')

_B64URL = re.compile(rb'[A-Za-z0-9_-]*\Z')


def encoded_length(size: int) -> int:
    """Length of unpadded base64url text for ``size`` bytes."""
    return (4 * size + 2) // 3


class TokenBuffer:
    """Token regions over a single buffer.

    :ivar buffer: Underlying :class:`bytes` (parsed) or :class:`bytearray`
        (allocated) storage.
    :ivar memoryview header: Encoded header.
    :ivar memoryview payload: Encoded payload.
    :ivar memoryview signed: Header, dot and payload: the signing input.
    :ivar memoryview signature: Encoded signature.

    """
    __slots__ = ('buffer', 'header', 'payload', 'signed', 'signature')

    def __init__(self, buffer: Union[bytes, bytearray], first_dot: int,
                 second_dot: int) -> None:
        view = memoryview(buffer)
        self.buffer = buffer
        self.header = view[:first_dot]
        self.payload = view[first_dot + 1:second_dot]
        self.signed = view[:second_dot]
        self.signature = view[second_dot + 1:]

    @classmethod
    def allocate(cls, header_size: int, payload_size: int,
                 signature_size: int) -> 'TokenBuffer':
        """Allocate a buffer for raw segments of the given sizes."""
        first_dot = encoded_length(header_size)
        second_dot = first_dot + 1 + encoded_length(payload_size)
        buffer = bytearray(second_dot + 1 + encoded_length(signature_size))
        buffer[first_dot] = DOT
        buffer[second_dot] = DOT
        return cls(buffer, first_dot, second_dot)

    @classmethod
    def parse(cls, data: bytes) -> 'TokenBuffer':
        """Split ``data`` at its two dots.

        :raises jwtkit.errors.MalformedTokenError: unless ``data`` holds
            exactly two dots.

        """
        first_dot = data.find(b'.')
        if first_dot == -1:
            raise errors.MalformedTokenError('Token has no segment separator')
        second_dot = data.find(b'.', first_dot + 1)
        if second_dot == -1:
            raise errors.MalformedTokenError('Token has only two segments')
        if data.find(b'.', second_dot + 1) != -1:
            raise errors.MalformedTokenError('Token has more than three segments')
        return cls(data, first_dot, second_dot)

    @staticmethod
    def encode(region: memoryview, data: bytes) -> None:
        """Write base64url of ``data`` into ``region``."""
        encoded = jose.b64encode(data)
        if len(encoded) != len(region):
            raise ValueError('Encoded segment is {0} bytes, region is {1}'.format(
                len(encoded), len(region)))
        region[:] = encoded

    @staticmethod
    def decode(region: memoryview) -> bytes:
        """Decode a base64url region.

        :raises binascii.Error: if the region is not unpadded base64url.

        """
        data = bytes(region)
        if not _B64URL.match(data):
            raise binascii.Error('Segment is not unpadded base64url')
        if not data:
            return b''
        return jose.b64decode(data)

    def __bytes__(self) -> bytes:
        return bytes(self.buffer)
