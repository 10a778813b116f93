"""
Core App Settings

Liveness and health endpoints.
"""

# Checks run by /health/, in order
HEALTH_CHECKS = ["database", "resource_types"]

# Login/Logout URLs for DRF browsable API
LOGIN_URL = "/api-auth/login/"
LOGOUT_URL = "/api-auth/logout/"
