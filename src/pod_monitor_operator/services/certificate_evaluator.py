"""
Certificate expiry evaluation from opaque key material.

Only the first decodable PEM block of a payload is evaluated. Trust chain,
signature and key usage are not validated: the result is the certificate's
NotAfter timestamp and nothing else.
"""

import base64
import binascii
import re
from datetime import datetime

from cryptography import x509

from ..errors import CertificateParseError, MalformedInputError

_PEM_BLOCK = re.compile(
    rb"-----BEGIN (?P<label>[^\r\n-]*)-----\r?\n(?P<body>.*?)-----END (?P=label)-----",
    re.DOTALL,
)


def _decode_body(body: bytes) -> bytes:
    lines = [line.strip() for line in body.splitlines()]

    # RFC 1421 headers ("Proc-Type: ...") are terminated by a blank line
    if lines and b":" in lines[0]:
        try:
            lines = lines[lines.index(b"") + 1 :]
        except ValueError:
            raise binascii.Error("PEM headers are not terminated") from None

    return base64.b64decode(b"".join(lines), validate=True)


def decode_pem_block(raw_bytes: bytes | str) -> tuple[str, bytes]:
    """
    Decode the first PEM block found in a payload.

    Blocks whose body is not valid base64 are skipped. Blocks of any label
    count, unlike x509.load_pem_x509_certificate, which only looks at
    CERTIFICATE blocks: load_certificate() rejects a payload whose first
    block holds something else instead of evaluating a later block.

    Args:
        raw_bytes: Payload possibly containing PEM armor

    Returns:
        (block label, DER bytes)

    Raises:
        MalformedInputError: If no decodable PEM block is found
    """
    if isinstance(raw_bytes, str):
        raw_bytes = raw_bytes.encode()

    for match in _PEM_BLOCK.finditer(raw_bytes):
        try:
            der = _decode_body(match.group("body"))
        except binascii.Error:
            continue
        return match.group("label").decode(errors="replace"), der

    raise MalformedInputError("failed to parse PEM block")


def load_certificate(raw_bytes: bytes | str) -> x509.Certificate:
    """
    Parse the first PEM block of a payload as an X.509 certificate.

    Raises:
        MalformedInputError: If no PEM block is found
        CertificateParseError: If the block is not a valid certificate
    """
    _, der = decode_pem_block(raw_bytes)
    try:
        return x509.load_der_x509_certificate(der)
    except ValueError as e:
        raise CertificateParseError(f"failed to parse certificate: {e}") from e


def evaluate(raw_bytes: bytes | str) -> datetime:
    """
    Return the expiry time (timezone-aware UTC) of a PEM-encoded certificate.

    Raises:
        MalformedInputError: If no PEM block is found
        CertificateParseError: If the block is not a valid certificate
    """
    return load_certificate(raw_bytes).not_valid_after_utc
