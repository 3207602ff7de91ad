"""Shared fixtures: sample document, cheap KDF settings and PEM key pairs."""

import copy

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa, x25519

from fieldcrypt.security.kdf import KdfParams


# Argon2id with minimal cost so the suite stays fast
FAST_KDF = KdfParams(time_cost=1, memory_cost=8, parallelism=1)

PASSWORD = "thats my kung fu"

ORDERS = {
    "Account": {
        "Account Name": "Firefly",
        "Order": [
            {
                "OrderID": "order103",
                "Product": [
                    {
                        "Product Name": "Bowler Hat",
                        "ProductID": 858383,
                        "SKU": "0406654608",
                        "Description": {
                            "Colour": "Purple",
                            "Width": 300,
                            "Height": 200,
                            "Depth": 210,
                            "Weight": 0.75,
                        },
                        "Price": 34.45,
                        "Quantity": 2,
                    },
                    {
                        "Product Name": "Trilby hat",
                        "ProductID": 858236,
                        "SKU": "0406634348",
                        "Description": {
                            "Colour": "Orange",
                            "Width": 300,
                            "Height": 200,
                            "Depth": 210,
                            "Weight": 0.6,
                        },
                        "Price": 21.67,
                        "Quantity": 1,
                    },
                ],
            },
            {
                "OrderID": "order104",
                "Product": [
                    {
                        "Product Name": "Bowler Hat",
                        "ProductID": 858383,
                        "SKU": "040657863",
                        "Description": {
                            "Colour": "Purple",
                            "Width": 300,
                            "Height": 200,
                            "Depth": 210,
                            "Weight": 0.75,
                        },
                        "Price": 34.45,
                        "Quantity": 4,
                    },
                    {
                        "ProductID": 345664,
                        "SKU": "0406654603",
                        "Product Name": "Cloak",
                        "Description": {
                            "Colour": "Black",
                            "Width": 30,
                            "Height": 20,
                            "Depth": 210,
                            "Weight": 2,
                        },
                        "Price": 107.99,
                        "Quantity": 1,
                        "Discontinued": None,
                        "Gift": False,
                    },
                ],
            },
        ],
    }
}


def _pem_pair(private_key, passphrase):
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.BestAvailableEncryption(passphrase.encode("utf-8")),
    ).decode("ascii")
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")
    return {"private": private_pem, "public": public_pem, "passphrase": passphrase}


@pytest.fixture
def orders():
    """A fresh copy of the sample order document."""
    return copy.deepcopy(ORDERS)


@pytest.fixture
def fast_kdf():
    return FAST_KDF


@pytest.fixture(scope="session")
def rsa_alice():
    return _pem_pair(rsa.generate_private_key(public_exponent=65537, key_size=2048), PASSWORD)


@pytest.fixture(scope="session")
def x25519_bob():
    return _pem_pair(x25519.X25519PrivateKey.generate(), "something else Alice doesn't know")


@pytest.fixture(scope="session")
def ec_carol():
    return _pem_pair(ec.generate_private_key(ec.SECP256R1()), "carol's passphrase")


@pytest.fixture(scope="session")
def x25519_mallory():
    return _pem_pair(x25519.X25519PrivateKey.generate(), "mallory")
