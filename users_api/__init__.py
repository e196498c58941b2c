"""Users API - Backend.

A small authenticated CRUD service for a single `users` table:
- `POST /auth` exchanges a username/password for a short-lived JWT.
- Every `/users` route requires `Authorization: Bearer <token>`.

Core concepts:
- Credentials (username + password hash) live only in the database.
- Tokens are stateless: they carry `{user_id, username}` and expire on their own.

See README for setup and usage.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
