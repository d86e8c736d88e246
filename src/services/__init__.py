"""
Service functions for the enrollment notifier Lambda.

This package contains reusable services for SMTP delivery, welcome email
content, lead document storage and secret lookup.
"""

__all__ = ['smtp', 'welcome', 'leads', 'secrets']
