"""Module completion certificates.

Note: Router is imported directly in main.py to avoid circular imports.
"""

from .models import CERTIFICATES_TABLES_CQL, ModuleCertificate, generate_certificate_number
from .service import CertificateNotFoundError, CertificateRenderer, CertificateService


__all__ = [
    "CERTIFICATES_TABLES_CQL",
    "CertificateNotFoundError",
    "CertificateRenderer",
    "CertificateService",
    "ModuleCertificate",
    "generate_certificate_number",
]
