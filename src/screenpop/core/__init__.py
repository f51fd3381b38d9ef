"""
Core business logic components.

This package contains the request authorization pipeline and lookup backend:
- Token service, authentication and rate limiting
- Audit logging
- Process-wide pipeline stages
- In-memory customer directory
- Metrics collection
"""
