"""Tests for jwtkit.errors."""
import sys
import unittest

import pytest


class UnknownAlgorithmErrorTest(unittest.TestCase):
    """Tests for jwtkit.errors.UnknownAlgorithmError."""

    def test_str(self):
        from jwtkit.errors import UnknownAlgorithmError
        assert "Unknown algorithm: 'HS256'" == str(UnknownAlgorithmError('HS256'))

    def test_unavailable_is_unknown(self):
        from jwtkit.errors import UnavailableAlgorithmError
        from jwtkit.errors import UnknownAlgorithmError
        error = UnavailableAlgorithmError('ES256')
        assert isinstance(error, UnknownAlgorithmError)
        assert 'Requested algorithm ES256 is unavailable' == str(error)


class KeyTypeErrorTest(unittest.TestCase):
    """Tests for jwtkit.errors.UnknownKeyTypeError."""

    def test_str(self):
        from jwtkit.errors import UnavailableKeyTypeError
        from jwtkit.errors import UnknownKeyTypeError
        assert "Unknown key type: 'OKP'" == str(UnknownKeyTypeError('OKP'))
        assert 'Requested key type oct is unavailable' == str(UnavailableKeyTypeError('oct'))


class InvalidKeyFieldErrorTest(unittest.TestCase):
    """Tests for jwtkit.errors.InvalidKeyFieldError."""

    def test_str(self):
        from jwtkit.errors import InvalidKeyFieldError
        assert "Invalid key field 'n'" == str(InvalidKeyFieldError('n'))
        assert "Invalid key field 'n': missing" == str(InvalidKeyFieldError('n', 'missing'))
        assert 'n' == InvalidKeyFieldError('n').field


class VerificationErrorTest(unittest.TestCase):
    """Tests for jwtkit.errors.VerificationError subclasses."""

    def test_hierarchy(self):
        from jwtkit import errors
        for cls in (errors.MalformedSignatureError, errors.SignatureInvalidError):
            assert issubclass(cls, errors.VerificationError)
        error = errors.NoVerifierForKeyIDError('key-1')
        assert isinstance(error, errors.VerificationError)
        assert isinstance(error, errors.Error)
        assert "No verifier for key id 'key-1'" == str(error)

    def test_capability_mismatch(self):
        from jwtkit.errors import CapabilityMismatchError
        assert "JWK key_ops does not include 'sign'" == str(CapabilityMismatchError('sign'))


if __name__ == '__main__':
    sys.exit(pytest.main(sys.argv[1:] + [__file__]))  # pragma: no cover
