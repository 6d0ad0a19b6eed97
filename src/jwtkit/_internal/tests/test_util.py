"""Test utilities.

.. warning:: This module is not part of the public API.

"""
import functools
import importlib.resources
import json
import os
from typing import Any
from typing import Callable
from typing import Dict

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric import rsa


def load_vector(*names):
    """Load contents of a test vector."""
    vector_ref = importlib.resources.files(__package__).joinpath('testdata', *names)
    return vector_ref.read_bytes()


def load_token(*names: str) -> bytes:
    """Load a compact token."""
    return load_vector(*names).strip()


def load_jwk(*names: str) -> Dict[str, Any]:
    """Load a JWK as a JSON object."""
    return json.loads(load_vector(*names))


def _guess_loader(filename: str, loader_pem: Callable, loader_der: Callable) -> Callable:
    _, ext = os.path.splitext(filename)
    if ext.lower() == ".pem":
        return loader_pem
    elif ext.lower() == ".der":
        return loader_der
    else:  # pragma: no cover
        raise ValueError("Loader could not be recognized based on extension")


def load_private_key(*names: str) -> Any:
    """Load private key."""
    loader = _guess_loader(names[-1], serialization.load_pem_private_key,
                           serialization.load_der_private_key)
    return loader(load_vector(*names), password=None)


def load_public_key(*names: str) -> Any:
    """Load public key."""
    loader = _guess_loader(names[-1], serialization.load_pem_public_key,
                           serialization.load_der_public_key)
    return loader(load_vector(*names))


@functools.lru_cache(maxsize=None)
def ec_key(curve_name: str) -> ec.EllipticCurvePrivateKey:
    """Generate (once) an EC private key on the named curve."""
    curve = {'P-256': ec.SECP256R1, 'P-384': ec.SECP384R1, 'P-521': ec.SECP521R1}[curve_name]
    return ec.generate_private_key(curve())


@functools.lru_cache(maxsize=None)
def rsa_key(key_size: int = 2048) -> rsa.RSAPrivateKey:
    """Generate (once) an RSA private key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=key_size)
