"""Tests for jwtkit.registry."""
import sys
import unittest
from unittest import mock

import pytest

from jwtkit import errors
from jwtkit import jwa
from jwtkit import jwk
from jwtkit._internal.tests import test_util
from jwtkit.jwa import Algorithm


class RegistryTest(unittest.TestCase):
    """Tests for jwtkit.registry.Registry."""

    def setUp(self):
        from jwtkit.registry import Registry
        self.registry = Registry()

    def test_empty(self):
        for alg in Algorithm:
            assert not self.registry.available(alg)
            with pytest.raises(errors.UnavailableAlgorithmError):
                self.registry.algorithm(alg)
        with pytest.raises(errors.UnavailableKeyTypeError):
            self.registry.key_parser(jwk.KeyType.EC)

    def test_register(self):
        assert jwa.ES256 is self.registry.register_algorithm(Algorithm.ES256, jwa.ES256)
        assert self.registry.available(Algorithm.ES256)
        assert jwa.ES256 is self.registry.algorithm(Algorithm.ES256)
        assert not self.registry.available(Algorithm.ES384)

    def test_register_out_of_range(self):
        with pytest.raises(errors.RegistrationError):
            self.registry.register_algorithm(Algorithm.INVALID, jwa.NONE)
        with pytest.raises(errors.RegistrationError):
            self.registry.register_algorithm(8, jwa.NONE)
        with pytest.raises(errors.RegistrationError):
            self.registry.register_key_parser(0, jwk.ECKeyParser())

    def test_register_mismatched_implementation(self):
        with pytest.raises(errors.RegistrationError):
            self.registry.register_algorithm(Algorithm.ES256, jwa.RS256)

    def test_last_registration_wins(self):
        from jwtkit.jwa import _JWAES
        from cryptography.hazmat.primitives import hashes
        from cryptography.hazmat.primitives.asymmetric import ec
        replacement = _JWAES(Algorithm.ES256, hashes.SHA256, ec.SECP256R1, 32)
        self.registry.register_algorithm(Algorithm.ES256, jwa.ES256)
        self.registry.register_algorithm(Algorithm.ES256, replacement)
        assert replacement is self.registry.algorithm(Algorithm.ES256)

    def test_freeze(self):
        self.registry.register_algorithm(Algorithm.ES256, jwa.ES256)
        assert not self.registry.frozen
        self.registry.freeze()
        assert self.registry.frozen
        with pytest.raises(errors.RegistrationError):
            self.registry.register_algorithm(Algorithm.ES384, jwa.ES384)
        with pytest.raises(errors.RegistrationError):
            self.registry.register_key_parser(jwk.KeyType.EC, jwk.ECKeyParser())
        assert jwa.ES256 is self.registry.algorithm(Algorithm.ES256)

    def test_unavailable_implementation(self):
        self.registry.register_algorithm(Algorithm.ES256, jwa.ES256)
        with mock.patch.object(jwa.ES256, 'available', return_value=False):
            assert not self.registry.available(Algorithm.ES256)
            with pytest.raises(errors.UnavailableAlgorithmError):
                self.registry.new_signer(Algorithm.ES256, '', test_util.ec_key('P-256'))

    def test_new(self):
        self.registry.register_algorithm(Algorithm.RS256, jwa.RS256)
        engine = self.registry.new(Algorithm.RS256)
        assert isinstance(engine, jwa.SignatureEngine)
        assert engine is not self.registry.new(Algorithm.RS256)

    def test_new_signer_and_verifier(self):
        self.registry.register_algorithm(Algorithm.ES384, jwa.ES384)
        key = test_util.ec_key('P-384')
        signer = self.registry.new_signer(Algorithm.ES384, 'k', key)
        assert Algorithm.ES384 is signer.algorithm
        assert 'k' == signer.key_id
        verifier = self.registry.new_verifier(Algorithm.ES384, 'k', key.public_key())
        assert 'k' == verifier.verify(Algorithm.ES384, 'k', b'x', signer.sign(b'x'))

    def test_new_signer_invalid_key(self):
        self.registry.register_algorithm(Algorithm.ES384, jwa.ES384)
        with pytest.raises(errors.InvalidKeyError):
            self.registry.new_signer(Algorithm.ES384, '', test_util.ec_key('P-256'))

    def test_key_parser_registration(self):
        parser = mock.MagicMock()
        assert parser is self.registry.register_key_parser(jwk.KeyType.OCT, parser)
        result = self.registry.parse_verifier({'kty': 'oct', 'key_ops': ['verify']})
        assert parser.parse_verifier.return_value is result
        base, jobj, registry = parser.parse_verifier.call_args[0]
        assert 'oct' == base.kty
        assert 'oct' == jobj['kty']
        assert self.registry is registry


class DefaultRegistryTest(unittest.TestCase):
    """Tests for jwtkit.registry.default_registry."""

    def test_contents(self):
        from jwtkit.registry import default_registry
        registry = default_registry()
        for alg in list(Algorithm)[1:]:
            assert registry.available(alg)
        assert not registry.available(Algorithm.INVALID)
        assert isinstance(registry.key_parser(jwk.KeyType.EC), jwk.ECKeyParser)
        assert isinstance(registry.key_parser(jwk.KeyType.RSA), jwk.RSAKeyParser)
        with pytest.raises(errors.UnavailableKeyTypeError):
            registry.key_parser(jwk.KeyType.OCT)

    def test_independent(self):
        from jwtkit.registry import default_registry
        first = default_registry()
        first.freeze()
        second = default_registry()
        assert not second.frozen
        second.register_algorithm(Algorithm.NONE, jwa.NONE)


if __name__ == '__main__':
    sys.exit(pytest.main(sys.argv[1:] + [__file__]))  # pragma: no cover
