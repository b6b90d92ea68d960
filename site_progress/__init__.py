"""Site Progress API - construction project tracking backend.

Users (ADMIN / MANAGER / WORKER) log in, manage Projects, and file Daily Progress
Reports (DPRs) against them.

Core concepts:
- Stateless JWT auth; every /api/ route except login/register needs a Bearer token.
- Access is decided per capability (role) and per ownership (creator / reporter).

See README for setup and usage.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
