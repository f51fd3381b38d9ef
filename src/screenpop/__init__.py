"""
Screen Pop Testing API - Mock CRM lookup service

A FastAPI service that returns canned customer records by phone, email or
customer ID behind token auth, role checks, CORS allow-listing, rate
limiting and audit logging, so contact-center screen pops can be demoed
without a real CRM.
"""

__version__ = "0.1.0"

from .main import app, create_app

__all__ = ["app", "create_app"]
