"""
Exceptions for fieldcrypt
Everything derives from FieldCryptError so callers have one general error catcher
"""


class FieldCryptError(Exception):
    # general container for errors
    pass


class ConfigurationError(FieldCryptError):
    # raised when parameters are missing, invalid or conflicting (before any crypto work)
    pass


class FormatError(FieldCryptError):
    # raised when an envelope token on decrypt is malformed
    pass


class KeyMaterialError(FieldCryptError):
    # raised when a public key cannot be read or a private key cannot be unlocked
    pass


class DecryptionError(FieldCryptError):
    # raised when the cipher rejects the ciphertext, password or key
    pass


class IntegrityError(FieldCryptError):
    # raised on an integrity tag mismatch
    pass
