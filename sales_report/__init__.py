"""Sales Daily Report - Backend.

Sales representatives log daily visit reports, managers review and comment on
them. This package holds the backend's authentication and session core:

- Sales persons table (email/password hash + manager flag)
- Signed access/refresh JWT pair carried in httpOnly cookies
- FastAPI dependencies that gate routes on authentication / manager role

See README for setup and usage.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
