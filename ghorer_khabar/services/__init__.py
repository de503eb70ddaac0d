"""
Services Module

Business logic and external collaborators. External services follow the
hybrid pattern: an abstract base, a Mock for development and Real
implementations chosen by a cached factory.

Services:
    - delivery: distance and delivery fee calculator
    - slots: meal slot availability and order validation
    - onboarding: seller onboarding state machine
    - subscriptions: subscription request lifecycle
    - kri: Kitchen Reliability Index
    - admin_stats: admin dashboard figures
    - geo: geocoding (Mock, Nominatim, Google Maps)
    - notifications: email and SMS (Mock, SendGrid + Twilio), in-app inbox
    - recommendations: ML service proxy with popularity fallback
    - excel_manager: lock-protected Excel report export
"""

from ghorer_khabar.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]
