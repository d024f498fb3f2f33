import re
import secrets
import time

CERTIFICATE_ID_PATTERN = re.compile(r"^CERT-\d{13}-[a-f0-9]{8}$")


def generate_certificate_id() -> str:
    """CERT-<epoch millis>-<8 hex chars>."""
    return f"CERT-{int(time.time() * 1000):013d}-{secrets.token_hex(4)}"


def validate_certificate_id(certificate_id: str) -> bool:
    return bool(certificate_id) and CERTIFICATE_ID_PATTERN.match(certificate_id) is not None
