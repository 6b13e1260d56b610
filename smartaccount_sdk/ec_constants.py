"""
Constants for elliptic curve signatures.
"""

# Order of the SECP256K1 elliptic curve (N value)
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# Largest s accepted in a signature; the upper half is the malleable twin
SECP256K1_HALF_N = SECP256K1_N // 2

# r || s || v
ECDSA_SIGNATURE_LENGTH = 65
