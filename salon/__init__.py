"""
Salon booking core.

Sub-packages:
- repositories: Narrow data-store interfaces and their SQLAlchemy implementations
- validators: Booking validation rules (pure functions)
- transactions: Atomic booking and reschedule handlers
- services: OTP-based two-step authentication and PDF reports
"""
