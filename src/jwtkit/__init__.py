"""JSON Web Token implementation.

This module is an implementation of `JSON Web Token`_ compact serialization
over `JSON Web Signature`_ algorithms, with `JSON Web Key`_ parsing.

.. _`JSON Web Token`: https://datatracker.ietf.org/doc/html/rfc7519
.. _`JSON Web Signature`: https://datatracker.ietf.org/doc/html/rfc7515
.. _`JSON Web Key`: https://datatracker.ietf.org/doc/html/rfc7517

"""
from jwtkit.errors import Error
from jwtkit.jwa import Algorithm
from jwtkit.jwk import KeyType
from jwtkit.jwt import Header
from jwtkit.jwt import marshal
from jwtkit.jwt import Signer
from jwtkit.jwt import unmarshal
from jwtkit.jwt import unmarshal_unverified
from jwtkit.jwt import unmarshal_with_header
from jwtkit.jwt import Verifier
from jwtkit.jwt import VerifierSet
from jwtkit.registry import default_registry
from jwtkit.registry import Registry
