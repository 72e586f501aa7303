"""
Services.

Services:
- otp_service: OTP-based two-step login, resend and password reset
- report_service: PDF rendering of the superadmin reports
"""

from salon.services.otp_service import (
    LoginResult,
    OtpAuthenticator,
    OtpNotifier,
    OtpVerification,
    generate_otp_code,
)
from salon.services.report_service import (
    REPORT_TYPES,
    Report,
    ReportPDFGenerator,
    build_report_pdf,
    load_report,
)

__all__ = [
    "LoginResult",
    "OtpAuthenticator",
    "OtpNotifier",
    "OtpVerification",
    "generate_otp_code",
    "REPORT_TYPES",
    "Report",
    "ReportPDFGenerator",
    "build_report_pdf",
    "load_report",
]
