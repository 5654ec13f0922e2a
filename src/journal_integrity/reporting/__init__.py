"""Reporting module - human-readable certificate pages."""

from .certificate_page import CertificateRenderer

__all__ = ["CertificateRenderer"]
